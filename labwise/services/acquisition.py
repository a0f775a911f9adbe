"""
Text acquisition: Azure Read OCR over the uploaded report, or caller-supplied text.
Single attempt; every failure is reported as an AcquisitionFailure with a typed reason.
"""
import logging
from pathlib import PurePosixPath
from typing import Optional, Protocol
from urllib.parse import urlparse

from azure.ai.documentintelligence import DocumentIntelligenceClient
from azure.ai.documentintelligence.models import AnalyzeDocumentRequest
from azure.core.exceptions import AzureError, HttpResponseError

from labwise.exceptions import AcquisitionFailure, AcquisitionReason

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({".pdf", ".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".heif"})

# Error codes Document Intelligence uses for content it cannot read
UNSUPPORTED_CONTENT_CODES = frozenset({"InvalidContent", "UnsupportedContent", "UnsupportedMediaType", "InvalidContentLength"})


class AcquisitionService(Protocol):
    def extract_text(self, file_url: str) -> str:
        ...


def check_supported_format(file_url: str) -> None:
    """Reject URLs whose path carries a known non-report extension. Extensionless URLs pass."""
    suffix = PurePosixPath(urlparse(file_url).path).suffix.lower()
    if suffix and suffix not in SUPPORTED_EXTENSIONS:
        raise AcquisitionFailure(
            AcquisitionReason.UNSUPPORTED_FORMAT,
            f"File type '{suffix}' is not a supported report format",
        )


class AzureReadService:
    """OCR through the Document Intelligence prebuilt-read model, analysing the file by URL."""

    def __init__(self, client: DocumentIntelligenceClient, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout

    def extract_text(self, file_url: str) -> str:
        logger.info("Scanning document (OCR)...")
        try:
            poller = self.client.begin_analyze_document(
                "prebuilt-read",
                AnalyzeDocumentRequest(url_source=file_url),
            )
            result = poller.result(timeout=self.timeout)
        except HttpResponseError as e:
            if _is_unsupported_content(e):
                raise AcquisitionFailure(AcquisitionReason.UNSUPPORTED_FORMAT, str(e.message or e)) from e
            raise AcquisitionFailure(AcquisitionReason.SERVICE_UNREACHABLE, str(e.message or e)) from e
        except AzureError as e:
            raise AcquisitionFailure(AcquisitionReason.SERVICE_UNREACHABLE, str(e)) from e

        text = result.content or ""
        if not text.strip() and result.pages:
            text = "\n".join(line.content for page in result.pages for line in (page.lines or []))
        logger.info("OCR returned %d chars across %d page(s)", len(text), len(result.pages or []))
        return text


def _is_unsupported_content(error: HttpResponseError) -> bool:
    if error.status_code == 415:
        return True
    odata = getattr(error, "error", None)
    codes = {getattr(odata, "code", None)}
    inner = getattr(odata, "innererror", None)
    if inner is not None:
        codes.add(getattr(inner, "code", None))
    return bool(codes & UNSUPPORTED_CONTENT_CODES)


def acquire_text(file_url: str, ocr_text: Optional[str], service: Optional[AcquisitionService]) -> str:
    """
    Return raw report text.

    Caller-supplied ``ocr_text`` skips the OCR call entirely. Raises
    AcquisitionFailure (service_unreachable, no_text_found, unsupported_format);
    the pipeline does not retry.
    """
    if ocr_text is not None:
        if not ocr_text.strip():
            raise AcquisitionFailure(AcquisitionReason.NO_TEXT_FOUND, "Supplied OCR text is empty")
        logger.info("Using caller-supplied OCR text (%d chars)", len(ocr_text))
        return ocr_text

    check_supported_format(file_url)
    if service is None:
        raise AcquisitionFailure(AcquisitionReason.SERVICE_UNREACHABLE, "No text recognition service configured")

    try:
        text = service.extract_text(file_url)
    except AcquisitionFailure:
        raise
    except Exception as e:
        logger.exception("OCR call failed for %s", file_url)
        raise AcquisitionFailure(AcquisitionReason.SERVICE_UNREACHABLE, str(e)) from e

    if not text or not text.strip():
        raise AcquisitionFailure(AcquisitionReason.NO_TEXT_FOUND, "No text found in document")
    return text
