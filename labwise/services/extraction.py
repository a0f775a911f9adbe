"""
Structured extraction: report text (and the image itself when possible) -> GPT-4o -> candidate records.
One call per document; ambiguous output degrades to an empty candidate list.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, List, Optional, Protocol
from urllib.parse import urlparse

from openai import AzureOpenAI

from labwise.exceptions import ExtractionAmbiguity
from labwise.services.json_parser import parse_lab_results
from labwise.services.llm_wrapper import call_llm_with_retry

logger = logging.getLogger(__name__)

# Formats accepted by both the OCR service and the vision model
IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg"})

RESULT_SCHEMA = [
    {
        "test_name": "String. Assay name exactly as printed (e.g. Hemoglobin)",
        "value": "Number or String. The reading as printed, keep all digits",
        "unit": "String (e.g. g/dL)",
        "reference_range": "String. Reference interval as printed (e.g. 12.0-15.5, <200)",
        "interpretation": "String. Flag printed on the report (e.g. Normal, High, Low)",
        "severity": "One of Critical, Caution, Normal",
        "explanation": "String. One or two plain-language sentences for a patient",
        "recommendations": "List of short actionable strings",
    }
]

SYSTEM_PROMPT = """You extract structured lab test results from medical reports.
Return only JSON as described. Never invent tests or values that are not in the report."""

EXTRACTION_PROMPT = """Extract every lab test result from the report below.
Respond with a JSON object of the form {{"results": [...]}} where the array follows the schema.
Rules:
- If a field is missing, output an empty string for it ("").
- If there are no results, output {{"results": []}}.
- Do not include markdown or any text outside the JSON.

Report text:
{text}"""


class ExtractionService(Protocol):
    def complete(self, prompt: str, schema_hint: str, image_url: Optional[str] = None) -> str:
        ...


@dataclass
class ExtractionOutcome:
    ai_content: str = ""
    records: List[Any] = field(default_factory=list)
    parse_error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.records

    def require_records(self) -> List[Any]:
        """Return the candidate records, or raise ExtractionAmbiguity when there are none."""
        if self.records:
            return self.records
        reason = "unparsable output" if self.parse_error else "empty result list"
        raise ExtractionAmbiguity(
            f"No candidate records: {reason}",
            ai_content=self.ai_content,
            parse_error=self.parse_error,
        )


class AzureOpenAIExtractionService:
    """Chat completions in JSON mode; the report image is attached when the URL points at one."""

    def __init__(
        self,
        client: AzureOpenAI,
        deployment: str,
        *,
        max_tokens: int = 1800,
        temperature: float = 0.2,
        max_retries: int = 0,
        retry_base_delay: float = 1.0,
    ):
        self.client = client
        self.deployment = deployment
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    def complete(self, prompt: str, schema_hint: str, image_url: Optional[str] = None) -> str:
        user_content: Any = f"{prompt}\n\nSchema:\n{schema_hint}"
        if image_url:
            user_content = [
                {"type": "text", "text": user_content},
                {"type": "image_url", "image_url": {"url": image_url}},
            ]
        logger.info("Sending to %s for extraction (prompt length=%d chars)", self.deployment, len(prompt))

        def _call():
            return self.client.chat.completions.create(
                model=self.deployment,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_content},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )

        response = call_llm_with_retry(
            _call,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            context="lab result extraction",
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def is_image_url(file_url: str) -> bool:
    return PurePosixPath(urlparse(file_url).path).suffix.lower() in IMAGE_EXTENSIONS


def build_extraction_prompt(text: str) -> str:
    return EXTRACTION_PROMPT.format(text=text.strip())


def extract_lab_results(
    text: str,
    file_url: str,
    service: ExtractionService,
    *,
    use_vision: bool = True,
) -> ExtractionOutcome:
    """
    Call the extraction service once and parse what comes back.

    Never raises for service or parse problems: a failed call is reported as an
    empty outcome with ``parse_error`` set, which the pipeline treats exactly like
    an unparsable or empty response.
    """
    image_url = file_url if use_vision and is_image_url(file_url) else None
    try:
        raw = service.complete(build_extraction_prompt(text), json.dumps(RESULT_SCHEMA), image_url=image_url)
    except Exception as e:
        logger.exception("Extraction call failed")
        return ExtractionOutcome(parse_error=f"Extraction service call failed: {e}")

    raw = raw or ""
    logger.debug("Raw AI output: %s", raw)
    parsed = parse_lab_results(raw)
    if parsed.records:
        logger.info("Recovered %d candidate record(s) via %s", len(parsed.records), parsed.strategy)
    else:
        logger.warning("No candidate records recovered: %s", parsed.error or "empty array")
    return ExtractionOutcome(ai_content=raw, records=list(parsed.records), parse_error=parsed.error)
