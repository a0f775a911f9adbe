"""
Build the external service clients the pipeline talks to, from explicit settings.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from azure.ai.documentintelligence import DocumentIntelligenceClient
from azure.core.credentials import AzureKeyCredential
from langchain_openai import AzureChatOpenAI
from openai import AzureOpenAI

from labwise.config import Settings
from labwise.exceptions import ConfigurationError
from labwise.services.acquisition import AcquisitionService, AzureReadService
from labwise.services.extraction import AzureOpenAIExtractionService, ExtractionService
from labwise.services.summary import LangChainSummaryService, SummaryService

logger = logging.getLogger(__name__)


@dataclass
class PipelineServices:
    extraction: ExtractionService
    summary: SummaryService
    acquisition: Optional[AcquisitionService] = None


def build_services(settings: Settings, *, require_ocr: bool = True) -> PipelineServices:
    """
    Create SDK clients. SDK-level retries are disabled so that the only retries
    are the ones configured through ``llm_max_retries``.

    Raises:
        ConfigurationError: If a credential needed for this request is missing
    """
    if not settings.azure_openai_endpoint:
        raise ConfigurationError("AZURE_OPENAI_ENDPOINT is not set")
    if not settings.azure_openai_key:
        raise ConfigurationError("AZURE_OPENAI_KEY is not set")

    ocr_configured = bool(settings.azure_doc_intel_endpoint and settings.azure_doc_intel_key)
    if require_ocr and not ocr_configured:
        raise ConfigurationError("AZURE_DOC_INTEL_ENDPOINT and AZURE_DOC_INTEL_KEY are required when no OCR text is supplied")

    timeout_kwargs = {}
    if settings.service_timeout_seconds is not None:
        timeout_kwargs["timeout"] = settings.service_timeout_seconds

    openai_client = AzureOpenAI(
        azure_endpoint=settings.azure_openai_endpoint,
        api_key=settings.azure_openai_key,
        api_version=settings.azure_openai_api_version,
        max_retries=0,
        **timeout_kwargs,
    )
    extraction = AzureOpenAIExtractionService(
        openai_client,
        settings.azure_openai_deployment,
        max_tokens=settings.extraction_max_tokens,
        temperature=settings.extraction_temperature,
        max_retries=settings.llm_max_retries,
        retry_base_delay=settings.llm_retry_base_delay,
    )

    llm = AzureChatOpenAI(
        azure_deployment=settings.summary_deployment_name,
        azure_endpoint=settings.azure_openai_endpoint,
        api_key=settings.azure_openai_key,
        api_version=settings.azure_openai_api_version,
        temperature=settings.summary_temperature,
        max_retries=0,
        **timeout_kwargs,
    )
    summary = LangChainSummaryService(
        llm,
        max_retries=settings.llm_max_retries,
        retry_base_delay=settings.llm_retry_base_delay,
    )

    acquisition = None
    if ocr_configured:
        doc_client = DocumentIntelligenceClient(
            endpoint=settings.azure_doc_intel_endpoint,
            credential=AzureKeyCredential(settings.azure_doc_intel_key),
            retry_total=0,
        )
        acquisition = AzureReadService(doc_client, timeout=settings.service_timeout_seconds)

    return PipelineServices(extraction=extraction, summary=summary, acquisition=acquisition)
