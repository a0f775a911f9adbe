"""
Robust JSON array parsing for extraction-service responses.
Handles fenced, wrapped and prose-padded payloads with multiple fallback strategies.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*")


@dataclass(frozen=True)
class ParseResult:
    """Candidate records recovered from a raw response, plus why recovery failed (if it did)."""

    records: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    strategy: Optional[str] = None


def _loads(text: str) -> Any:
    # Decimal keeps "8.20" from collapsing to 8.2
    return json.loads(text, parse_float=Decimal)


def _clean_response(response_content: str) -> str:
    """Remove markdown code-fence markers and surrounding whitespace."""
    return _FENCE_RE.sub("", response_content).strip()


def _first_array_property(obj: dict) -> Optional[list]:
    for value in obj.values():
        if isinstance(value, list):
            return value
    return None


def parse_lab_results(response_content: Optional[str]) -> ParseResult:
    """
    Recover a list of candidate lab-result records from raw model output.

    Strategies, in order:
        1. The cleaned text is a JSON array.
        2. The cleaned text is a JSON object; take its first array-valued property.
        3. The substring between the first '[' and the last ']' is a JSON array.

    Never raises. When every strategy fails the result is an empty list with
    ``error`` describing the last failure. The function is pure, so parsing the
    same text twice yields equal results.
    """
    if not response_content or not isinstance(response_content, str) or not response_content.strip():
        return ParseResult(error="Empty response from extraction service")

    cleaned = _clean_response(response_content)
    last_error: Optional[str] = None

    # Strategy 1 and 2: whole payload
    try:
        parsed = _loads(cleaned)
    except json.JSONDecodeError as e:
        parsed = None
        last_error = f"JSON decode failed: {e}"
    if isinstance(parsed, list):
        return ParseResult(records=parsed, strategy="array")
    if isinstance(parsed, dict):
        arr = _first_array_property(parsed)
        if arr is not None:
            return ParseResult(records=arr, strategy="object_property")
        last_error = "JSON object has no array-valued property"
    elif parsed is not None:
        last_error = f"JSON payload is a {type(parsed).__name__}, not an array"

    # Strategy 3: bracketed substring
    start = cleaned.find("[")
    end = cleaned.rfind("]")
    if start != -1 and end > start:
        try:
            parsed = _loads(cleaned[start:end + 1])
            if isinstance(parsed, list):
                return ParseResult(records=parsed, strategy="bracket_substring")
        except json.JSONDecodeError as e:
            last_error = f"Bracketed substring is not valid JSON: {e}"
    elif last_error is None:
        last_error = "No JSON array found in response"

    logger.debug("Unable to parse extraction response (%s). Preview: %s", last_error, response_content[:200])
    return ParseResult(error=last_error or "No JSON array found in response")
