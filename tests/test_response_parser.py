"""Tests for parsing the free-text classification reply."""

from unittest.mock import MagicMock, patch

import pytest

from prioritizer.classifier.response import (
    _ARRAY_SPAN_RE,
    Malformed,
    Parsed,
    extract_json_span,
    parse_classification_response,
    parse_or_raise,
)
from prioritizer.core.errors import UpstreamFormatError
from prioritizer.models import ClassificationResult

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def test_extract_span_strips_surrounding_prose():
    text = 'Here is the result:\n[{"id":"a"}]\nThanks'
    assert extract_json_span(text) == '[{"id":"a"}]'


def test_extract_span_is_greedy():
    text = 'first [1] then [2] done'
    assert extract_json_span(text) == "[1] then [2]"


def test_extract_span_without_brackets_returns_whole_text():
    assert extract_json_span('{"id": "a"}') == '{"id": "a"}'


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def test_parses_array_wrapped_in_prose():
    text = (
        "Here is the result:\n"
        '[{"id":"a","priority":"high","reasoning":"x"}]\n'
        "Thanks"
    )

    outcome = parse_classification_response(text)

    assert isinstance(outcome, Parsed)
    assert outcome.results == {
        "a": ClassificationResult(id="a", priority="high", reasoning="x"),
    }
    assert outcome.skipped == 0


def test_parses_markdown_fenced_array():
    text = '```json\n[{"id": "a", "priority": "low", "reasoning": "newsletter"}]\n```'

    outcome = parse_classification_response(text)

    assert isinstance(outcome, Parsed)
    assert outcome.results["a"].priority == "low"


def test_empty_array_is_parsed():
    outcome = parse_classification_response("[]")
    assert outcome == Parsed(results={}, skipped=0)


def test_first_entry_wins_for_duplicate_ids():
    text = '[{"id":"a","priority":"low","reasoning":"one"},{"id":"a","priority":"high","reasoning":"two"}]'

    outcome = parse_classification_response(text)

    assert isinstance(outcome, Parsed)
    assert outcome.results["a"].priority == "low"
    assert outcome.results["a"].reasoning == "one"


def test_entries_without_id_or_not_objects_are_skipped():
    text = '[{"priority":"high"}, "junk", 3, {"id": ""}, {"id": 7}, {"id":"b","priority":"medium"}]'

    outcome = parse_classification_response(text)

    assert isinstance(outcome, Parsed)
    assert list(outcome.results) == ["b"]
    assert outcome.skipped == 5


def test_missing_fields_are_kept_raw():
    outcome = parse_classification_response('[{"id":"a","priority":5}]')

    assert isinstance(outcome, Parsed)
    assert outcome.results["a"] == ClassificationResult(id="a", priority=None, reasoning="")


def test_no_brackets_invalid_json_is_malformed():
    outcome = parse_classification_response("I could not classify these emails.")

    assert isinstance(outcome, Malformed)
    assert outcome.raw_text == "I could not classify these emails."
    assert "Invalid JSON" in outcome.reason


def test_broken_array_is_malformed():
    outcome = parse_classification_response('[{"id": "a", "priority": ]')
    assert isinstance(outcome, Malformed)


def test_object_instead_of_array_is_malformed():
    outcome = parse_classification_response('{"id": "a", "priority": "high"}')

    assert isinstance(outcome, Malformed)
    assert "dict" in outcome.reason


@pytest.mark.parametrize("text", ["", "   \n"])
def test_empty_reply_is_malformed(text):
    outcome = parse_classification_response(text)

    assert isinstance(outcome, Malformed)
    assert outcome.reason == "Empty reply"


# ---------------------------------------------------------------------------
# parse_or_raise
# ---------------------------------------------------------------------------


def test_parse_or_raise_returns_results():
    results = parse_or_raise('[{"id":"a","priority":"high","reasoning":"x"}]')
    assert results["a"].priority == "high"


def test_parse_or_raise_raises_format_error():
    with pytest.raises(UpstreamFormatError) as exc_info:
        parse_or_raise("no json here")

    assert "Invalid response format" in str(exc_info.value)
    assert exc_info.value.raw_text == "no json here"


# ---------------------------------------------------------------------------
# Scan timeout
# ---------------------------------------------------------------------------


def test_span_search_accepts_timeout():
    match = _ARRAY_SPAN_RE.search('note: [{"id": "a"}] end', timeout=0.5)
    assert match.group(0) == '[{"id": "a"}]'


def test_scan_timeout_is_malformed():
    pattern = MagicMock()
    pattern.search.side_effect = TimeoutError("regex timed out")

    with patch("prioritizer.classifier.response._ARRAY_SPAN_RE", pattern):
        outcome = parse_classification_response("[" * 10 + "]")

    assert isinstance(outcome, Malformed)
    assert "Timed out" in outcome.reason
