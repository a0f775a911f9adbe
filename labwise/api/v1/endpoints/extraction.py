import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from labwise.api.deps import ServicesFactory, get_services_factory
from labwise.config import Settings, get_settings
from labwise.database import get_session
from labwise.exceptions import ValidationError
from labwise.schemas import ErrorResponse, ExtractRequest, ExtractResponse
from labwise.services.pipeline import LabReportPipeline
from labwise.services.storage import DocumentStore, ResultStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/lab-ocr-extract",
    response_model=ExtractResponse,
    response_model_exclude_unset=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def lab_ocr_extract(
    payload: Optional[ExtractRequest] = Body(default=None),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    services_factory: ServicesFactory = Depends(get_services_factory),
):
    """Extract lab results from an uploaded report and store them against the document."""
    payload = payload or ExtractRequest()
    missing = payload.missing_fields()
    if missing:
        raise ValidationError(missing)

    services = services_factory(settings, require_ocr=payload.ocr_text is None)
    pipeline = LabReportPipeline(settings, services, DocumentStore(session), ResultStore(session))
    outcome = await pipeline.run(payload.file_url, payload.file_id, ocr_text=payload.ocr_text)
    return ExtractResponse.model_validate(outcome.to_response())
