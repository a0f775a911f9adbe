"""HTTP tests for the extraction endpoint and document read-back routes."""
import pytest

from labwise.api.deps import get_services_factory
from labwise.config import Settings, get_settings
from labwise.main import app, lifespan
from labwise.services.factory import build_services
from labwise.services.storage import ResultStore

EXTRACT_URL = "/api/v1/lab-ocr-extract"
FILE_URL = "https://files.example.com/reports/cbc.png"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, missing",
    [
        ({}, ["file_url", "file_id"]),
        ({"file_id": "doc-1"}, ["file_url"]),
        ({"file_url": FILE_URL}, ["file_id"]),
        ({"file_url": "", "file_id": "doc-1"}, ["file_url"]),
    ],
)
async def test_missing_fields_rejected_without_external_calls(
    client, factory_calls, fake_acquisition, fake_extraction, fake_summary, body, missing
):
    response = await client.post(EXTRACT_URL, json=body)

    assert response.status_code == 400
    error = response.json()["error"]
    for name in missing:
        assert name in error
    assert factory_calls == []
    assert fake_acquisition.calls == []
    assert fake_extraction.calls == []
    assert fake_summary.prompts == []


@pytest.mark.asyncio
async def test_missing_body_rejected(client, factory_calls):
    response = await client.post(EXTRACT_URL)
    assert response.status_code == 400
    assert "file_url" in response.json()["error"]
    assert factory_calls == []


@pytest.mark.asyncio
async def test_malformed_json_rejected(client, factory_calls):
    response = await client.post(EXTRACT_URL, content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert "error" in response.json()
    assert factory_calls == []


@pytest.mark.asyncio
async def test_missing_credentials_is_configuration_error(client, document):
    app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, azure_openai_endpoint="", azure_openai_key="")
    app.dependency_overrides[get_services_factory] = lambda: build_services

    response = await client.post(EXTRACT_URL, json={"file_url": FILE_URL, "file_id": document.id})

    assert response.status_code == 500
    assert "AZURE_OPENAI" in response.json()["error"]


@pytest.mark.asyncio
async def test_preflight_answered_without_pipeline(client, factory_calls):
    response = await client.options(
        EXTRACT_URL,
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers
    assert factory_calls == []


@pytest.mark.asyncio
async def test_success_response_shape(client, document, session_factory, fake_extraction, fake_summary, factory_calls):
    fake_extraction.response = (
        '```json\n[{"test_name": "Hemoglobin", "value": 8.20, "unit": "g/dL",'
        ' "reference_range": "12.0-15.5", "interpretation": "Low", "severity": "Caution",'
        ' "recommendations": ["Talk to your doctor"]}]\n```'
    )
    fake_summary.response = "'Your hemoglobin is slightly low.'"

    response = await client.post(EXTRACT_URL, json={"file_url": FILE_URL, "file_id": document.id})

    assert response.status_code == 200
    body = response.json()
    assert body["extracted"] == 1
    assert body["aiContent"] == fake_extraction.response
    assert body["summary"] == "Your hemoglobin is slightly low."
    assert body["insert_errors"] == []
    assert "parse_debug" not in body
    assert "parseError" not in body
    assert factory_calls == [{"require_ocr": True}]
    assert "x-request-id" in response.headers

    async with session_factory() as session:
        rows = await ResultStore(session).select_all(file_id=document.id)
    assert rows[0].value == "8.20"
    assert rows[0].severity == "Caution"
    assert rows[0].recommendations == ["Talk to your doctor"]


@pytest.mark.asyncio
async def test_degraded_response_shape(client, document, fake_extraction):
    fake_extraction.response = "no results"

    response = await client.post(EXTRACT_URL, json={"file_url": FILE_URL, "file_id": document.id})

    assert response.status_code == 200
    body = response.json()
    assert body["extracted"] == 0
    assert body["aiContent"] == "no results"
    assert body["parse_debug"]
    assert body["parseError"]
    assert body["insert_errors"] == []


@pytest.mark.asyncio
async def test_supplied_ocr_text_does_not_require_ocr_service(client, document, factory_calls, fake_extraction):
    fake_extraction.response = '[{"test_name": "Glucose", "value": "95"}]'

    response = await client.post(
        EXTRACT_URL,
        json={"file_url": FILE_URL, "file_id": document.id, "ocr_text": "Glucose 95 mg/dL"},
    )

    assert response.status_code == 200
    assert factory_calls == [{"require_ocr": False}]


@pytest.mark.asyncio
async def test_documents_read_back(client, fake_extraction):
    created = await client.post(
        "/api/v1/documents/",
        json={"id": "doc-42", "file_name": "lipids.pdf", "file_url": "https://files.example.com/lipids.pdf"},
    )
    assert created.status_code == 201
    assert created.json()["summary"] is None

    duplicate = await client.post(
        "/api/v1/documents/",
        json={"id": "doc-42", "file_name": "lipids.pdf", "file_url": "https://files.example.com/lipids.pdf"},
    )
    assert duplicate.status_code == 409

    fake_extraction.response = '{"results": [{"test_name": "LDL", "value": "130", "interpretation": "High"}]}'
    await client.post(
        EXTRACT_URL,
        json={"file_url": "https://files.example.com/lipids.pdf", "file_id": "doc-42", "ocr_text": "LDL 130"},
    )

    doc = await client.get("/api/v1/documents/doc-42")
    assert doc.status_code == 200
    assert doc.json()["summary"]

    listing = await client.get("/api/v1/documents/")
    assert [d["id"] for d in listing.json()] == ["doc-42"]

    results = await client.get("/api/v1/documents/doc-42/results")
    assert [(r["test_name"], r["status"], r["is_placeholder"]) for r in results.json()] == [("LDL", "High", False)]


@pytest.mark.asyncio
async def test_unknown_document_is_404(client):
    response = await client.get("/api/v1/documents/missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_unexpected_pipeline_fault_returns_diagnostics(client, document, fake_extraction, monkeypatch):
    fake_extraction.response = '[{"test_name": "Glucose", "value": "95"}]'

    def _broken(records):
        raise KeyError("test_name")

    monkeypatch.setattr("labwise.services.pipeline.normalize_candidates", _broken)

    response = await client.post(EXTRACT_URL, json={"file_url": FILE_URL, "file_id": document.id})

    assert response.status_code == 500
    body = response.json()
    assert "test_name" in body["error"]
    assert body["aiContent"] == fake_extraction.response
    assert "parseError" not in body


@pytest.mark.asyncio
async def test_lifespan_initializes_database(monkeypatch):
    calls = []

    async def _init_db():
        calls.append("init_db")

    monkeypatch.setattr("labwise.main.init_db", _init_db)

    async with lifespan(app):
        assert calls == ["init_db"]
