"""Parsing of the free-text classification reply.

The model is asked for a JSON array but may wrap it in prose or markdown.
Parsing makes one extraction pass and nothing more:

1. Take the greedy span from the first ``[`` to the last ``]``; if there is
   no such span, take the whole text.
2. Parse it strictly as JSON.
3. A top-level value that is not an array is malformed.

The result is tagged: ``Parsed`` carries the per-id results, ``Malformed``
carries the raw text and the reason. No heuristic repair is attempted.

Usage:
    from prioritizer.classifier.response import Parsed, parse_classification_response

    outcome = parse_classification_response(reply_text)
    if isinstance(outcome, Parsed):
        results = outcome.results
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import regex

from prioritizer.core.errors import UpstreamFormatError
from prioritizer.core.logging import get_logger
from prioritizer.models import ClassificationResult

logger = get_logger(__name__)

# Timeout in seconds for scanning model output; passed at search time
REGEX_TIMEOUT = 1.0

_ARRAY_SPAN_RE = regex.compile(r"\[[\s\S]*\]")


@dataclass(frozen=True, slots=True)
class Parsed:
    """A successfully parsed reply.

    Attributes:
        results: Classification results keyed by email id (first entry per id wins)
        skipped: Number of array entries ignored (not objects, or no id)
    """

    results: dict[str, ClassificationResult] = field(default_factory=dict)
    skipped: int = 0


@dataclass(frozen=True, slots=True)
class Malformed:
    """A reply that could not be parsed into the expected shape.

    Attributes:
        raw_text: The reply exactly as received
        reason: Why parsing failed
    """

    raw_text: str
    reason: str


ParseOutcome = Parsed | Malformed


def extract_json_span(raw_text: str) -> str:
    """Return the bracketed array span, or the whole text if there is none."""
    match = _ARRAY_SPAN_RE.search(raw_text, timeout=REGEX_TIMEOUT)
    return match.group(0) if match else raw_text


def _to_result(entry: Any) -> ClassificationResult | None:
    if not isinstance(entry, dict):
        return None
    email_id = entry.get("id")
    if not isinstance(email_id, str) or not email_id:
        return None
    priority = entry.get("priority")
    reasoning = entry.get("reasoning")
    return ClassificationResult(
        id=email_id,
        priority=priority if isinstance(priority, str) else None,
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


def parse_classification_response(raw_text: str) -> ParseOutcome:
    """Parse the classification reply into per-id results.

    Args:
        raw_text: Reply text from the classification service

    Returns:
        Parsed on success, Malformed otherwise (never raises)
    """
    if not raw_text or not raw_text.strip():
        return Malformed(raw_text=raw_text or "", reason="Empty reply")

    try:
        candidate = extract_json_span(raw_text)
    except TimeoutError:
        return Malformed(raw_text=raw_text, reason="Timed out locating the JSON array")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        return Malformed(raw_text=raw_text, reason=f"Invalid JSON: {e}")

    if not isinstance(data, list):
        return Malformed(
            raw_text=raw_text,
            reason=f"Expected a JSON array, got {type(data).__name__}",
        )

    results: dict[str, ClassificationResult] = {}
    skipped = 0
    for entry in data:
        result = _to_result(entry)
        if result is None:
            skipped += 1
            continue
        results.setdefault(result.id, result)

    return Parsed(results=results, skipped=skipped)


def parse_or_raise(raw_text: str) -> dict[str, ClassificationResult]:
    """Parse the reply, raising UpstreamFormatError when it is malformed.

    Raises:
        UpstreamFormatError: If the reply cannot be parsed
    """
    outcome = parse_classification_response(raw_text)
    if isinstance(outcome, Malformed):
        logger.error(
            "classification_reply_malformed",
            reason=outcome.reason,
            preview=outcome.raw_text[:200],
        )
        raise UpstreamFormatError(
            f"Invalid response format from classification service: {outcome.reason}",
            raw_text=outcome.raw_text,
        )

    if outcome.skipped:
        logger.warning("classification_entries_skipped", skipped=outcome.skipped)
    return outcome.results
