"""Pytest configuration and fixtures."""
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from labwise.api.deps import get_services_factory
from labwise.config import Settings, get_settings
from labwise.database import get_session, init_db
from labwise.models import Document
from labwise.services.factory import PipelineServices
from labwise.services.storage import DocumentStore, ResultStore


class FakeAcquisition:
    def __init__(self, text: str = "Hemoglobin 8.2 g/dL 12.0-15.5 Low"):
        self.text = text
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    def extract_text(self, file_url: str) -> str:
        self.calls.append(file_url)
        if self.error:
            raise self.error
        return self.text


class FakeExtraction:
    def __init__(self, response: str = "[]"):
        self.response = response
        self.error: Optional[Exception] = None
        self.calls: List[dict] = []

    def complete(self, prompt: str, schema_hint: str, image_url: Optional[str] = None) -> str:
        self.calls.append({"prompt": prompt, "schema_hint": schema_hint, "image_url": image_url})
        if self.error:
            raise self.error
        return self.response


class FakeSummary:
    def __init__(self, response: str = '"Most of your results look fine."'):
        self.response = response
        self.error: Optional[Exception] = None
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        azure_openai_endpoint="https://example.openai.azure.com",
        azure_openai_key="test-key",
        azure_doc_intel_endpoint="https://example.cognitiveservices.azure.com",
        azure_doc_intel_key="test-key",
    )


@pytest.fixture
def fake_acquisition():
    return FakeAcquisition()


@pytest.fixture
def fake_extraction():
    return FakeExtraction()


@pytest.fixture
def fake_summary():
    return FakeSummary()


@pytest.fixture
def services(fake_acquisition, fake_extraction, fake_summary):
    return PipelineServices(extraction=fake_extraction, summary=fake_summary, acquisition=fake_acquisition)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def document(session):
    doc = Document(id="doc-1", file_name="cbc.png", file_url="https://files.example.com/reports/cbc.png")
    doc = await DocumentStore(session).insert(doc)
    await session.commit()
    return doc


@pytest.fixture
def result_store(session):
    return ResultStore(session)


@pytest.fixture
def document_store(session):
    return DocumentStore(session)


@pytest.fixture
def factory_calls():
    return []


@pytest_asyncio.fixture
async def client(session_factory, settings, services, factory_calls):
    from labwise.main import app

    async def _session_override():
        async with session_factory() as session:
            yield session

    def _factory(settings_arg, require_ocr=True):
        factory_calls.append({"require_ocr": require_ocr})
        return services

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_services_factory] = lambda: _factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
