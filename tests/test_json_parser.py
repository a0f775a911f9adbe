"""Unit tests for parse_lab_results: fences, wrapped objects, bracket fallback, never raising."""
from decimal import Decimal

import pytest

from labwise.services.json_parser import parse_lab_results


def test_plain_array():
    result = parse_lab_results('[{"test_name": "Hemoglobin", "value": "8.2"}]')
    assert result.records == [{"test_name": "Hemoglobin", "value": "8.2"}]
    assert result.error is None
    assert result.strategy == "array"


def test_fenced_array_recovered_unchanged():
    raw = '```json\n[{"test_name": "Glucose", "value": "95", "unit": "mg/dL"}]\n```'
    result = parse_lab_results(raw)
    assert result.records == [{"test_name": "Glucose", "value": "95", "unit": "mg/dL"}]


def test_bare_fence_without_language():
    result = parse_lab_results('```\n[{"test_name": "TSH"}]\n```')
    assert result.records == [{"test_name": "TSH"}]


def test_object_wrapper_takes_first_array_property():
    raw = '{"note": "ok", "results": [{"test_name": "LDL"}], "other": [{"test_name": "ignored"}]}'
    result = parse_lab_results(raw)
    assert result.records == [{"test_name": "LDL"}]
    assert result.strategy == "object_property"


def test_array_embedded_in_prose():
    raw = 'Here are the results: [{"test_name": "Sodium", "value": 140}] Let me know if you need more.'
    result = parse_lab_results(raw)
    assert result.records == [{"test_name": "Sodium", "value": 140}]
    assert result.strategy == "bracket_substring"


def test_numbers_keep_reported_precision():
    result = parse_lab_results('[{"test_name": "Creatinine", "value": 1.20}]')
    value = result.records[0]["value"]
    assert isinstance(value, Decimal)
    assert str(value) == "1.20"


def test_empty_array_is_valid_but_empty():
    result = parse_lab_results("[]")
    assert result.records == []
    assert result.error is None


@pytest.mark.parametrize(
    "raw",
    [
        "no results",
        "",
        None,
        "   ",
        '{"results": "none"}',
        "[not json at all]",
        "42",
    ],
)
def test_unparsable_output_yields_empty_list_without_raising(raw):
    result = parse_lab_results(raw)
    assert result.records == []
    assert result.error


def test_object_without_array_and_no_brackets():
    result = parse_lab_results('{"message": "no tests found"}')
    assert result.records == []
    assert "no array" in result.error


def test_parsing_is_idempotent():
    raw = '```json\n{"results": [{"test_name": "WBC", "value": 15000}]}\n```'
    assert parse_lab_results(raw) == parse_lab_results(raw)
