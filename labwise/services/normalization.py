"""
Coerce extraction candidates into the canonical lab_results row shape.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from labwise.models import Severity

logger = logging.getLogger(__name__)

_SEVERITY_BY_LOWER = {s.value.lower(): s.value for s in Severity}


def normalize_value(value: Any) -> str:
    """Render a reading as text without losing what was reported. Absent -> ''."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, Decimal):
        # str(Decimal) keeps trailing zeros but may switch to exponent form for tiny/huge numbers
        text = str(value)
        return format(value, "f") if "E" in text else text
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def normalize_severity(value: Any) -> Optional[str]:
    """Pass through a closed-set severity; anything else becomes None. No derivation from status."""
    if not isinstance(value, str) or not value.strip():
        return None
    severity = _SEVERITY_BY_LOWER.get(value.strip().lower())
    if severity is None:
        logger.debug("Dropping out-of-set severity %r", value)
    return severity


def normalize_recommendations(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [_text(item) for item in value if _text(item)]
    return []


def normalize_candidate(candidate: Any) -> Dict[str, Any]:
    """Map one extraction candidate onto the lab_results columns (file_id excluded)."""
    if not isinstance(candidate, dict):
        logger.warning("Extraction candidate is a %s, not an object", type(candidate).__name__)
        candidate = {}

    return {
        "test_name": _text(candidate.get("test_name")),
        "value": normalize_value(candidate.get("value")),
        "unit": _text(candidate.get("unit")),
        "normal_range": _text(candidate.get("reference_range")),
        "status": _text(candidate.get("interpretation")),
        "severity": normalize_severity(candidate.get("severity")),
        "explanation": _optional_text(candidate.get("explanation")),
        "recommendations": normalize_recommendations(candidate.get("recommendations")),
    }


def normalize_candidates(candidates: List[Any]) -> List[Dict[str, Any]]:
    return [normalize_candidate(c) for c in candidates]
