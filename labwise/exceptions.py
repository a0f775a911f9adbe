"""Error taxonomy for the lab report pipeline.

Only ValidationError, ConfigurationError and PipelineError reach the caller as
non-200 responses. The rest describe degraded outcomes that the pipeline records and
reports inside a normal response. PipelineError is reserved for faults that
are not part of that degraded flow.
"""
import enum


class LabwiseError(Exception):
    """Base exception for pipeline errors."""
    pass


class ValidationError(LabwiseError):
    """Request is missing required fields. Client-fixable (HTTP 400)."""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required field(s): {', '.join(self.missing_fields)}")


class ConfigurationError(LabwiseError):
    """A required service credential is not configured. Operator-fixable (HTTP 500)."""
    pass


class AcquisitionReason(str, enum.Enum):
    SERVICE_UNREACHABLE = "service_unreachable"
    NO_TEXT_FOUND = "no_text_found"
    UNSUPPORTED_FORMAT = "unsupported_format"


class AcquisitionFailure(LabwiseError):
    """No text could be obtained from the document."""

    def __init__(self, reason: AcquisitionReason, message: str = ""):
        self.reason = reason
        self.message = message or reason.value
        super().__init__(f"{reason.value}: {self.message}")


class ExtractionAmbiguity(LabwiseError):
    """Extraction service output was empty or could not be parsed into records."""

    def __init__(self, message: str, ai_content: str = "", parse_error: str | None = None):
        self.ai_content = ai_content
        self.parse_error = parse_error
        super().__init__(message)


class PipelineError(LabwiseError):
    """Unexpected failure after extraction ran. Carries the extraction diagnostics (HTTP 500)."""

    def __init__(self, message: str, ai_content: str = "", parse_error: str | None = None):
        self.ai_content = ai_content
        self.parse_error = parse_error
        super().__init__(message)


class StorageError(LabwiseError):
    """A single row could not be written."""
    pass


class SummaryFailure(LabwiseError):
    """The summary call failed or returned nothing usable."""
    pass
