"""
Patient-facing summary for a whole report, generated from the normalized rows.
"""
import json
import logging
from typing import Any, Dict, List, Protocol

from langchain_openai import AzureChatOpenAI

from labwise.exceptions import SummaryFailure
from labwise.services.llm_wrapper import call_llm_with_retry

logger = logging.getLogger(__name__)

NO_SUMMARY_MESSAGE = "No summary available: no readable lab results were found in this report."

WRAPPING_QUOTES = "\"'“”‘’`"

SUMMARY_PROMPT = """You are helping a patient understand their lab report.
Write a summary of 2 to 5 sentences in plain, everyday language for the results below.
- Do not list the tests one by one and do not use tables.
- If results are normal, be reassuring.
- If results are abnormal or critical, be honest but gentle and suggest discussing them with their doctor.
- Do not give prescriptive medical advice, diagnoses or medication instructions.
Return only the summary text.

Results:
{results}"""

_PROMPT_FIELDS = ("test_name", "value", "unit", "normal_range", "status", "severity")


class SummaryService(Protocol):
    def complete(self, prompt: str) -> str:
        ...


class LangChainSummaryService:
    def __init__(self, llm: AzureChatOpenAI, *, max_retries: int = 0, retry_base_delay: float = 1.0):
        self.llm = llm
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    def complete(self, prompt: str) -> str:
        response = call_llm_with_retry(
            lambda: self.llm.invoke(prompt),
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            context="report summary",
        )
        content = getattr(response, "content", response)
        return content if isinstance(content, str) else str(content or "")


def build_summary_prompt(rows: List[Dict[str, Any]]) -> str:
    compact = [{k: row.get(k) for k in _PROMPT_FIELDS if row.get(k) not in (None, "")} for row in rows]
    return SUMMARY_PROMPT.format(results=json.dumps(compact, indent=2, ensure_ascii=False))


def clean_summary(text: str) -> str:
    cleaned = (text or "").strip()
    while len(cleaned) >= 2 and cleaned[0] in WRAPPING_QUOTES and cleaned[-1] in WRAPPING_QUOTES:
        cleaned = cleaned[1:-1].strip()
    return cleaned


def generate_summary(rows: List[Dict[str, Any]], service: SummaryService) -> str:
    """Raises SummaryFailure when the call fails or yields nothing usable."""
    if not rows:
        raise SummaryFailure("No results to summarize")
    try:
        raw = service.complete(build_summary_prompt(rows))
    except Exception as e:
        raise SummaryFailure(f"Summary call failed: {e}") from e
    summary = clean_summary(raw)
    if not summary:
        raise SummaryFailure("Summary call returned no text")
    return summary
