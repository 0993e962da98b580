"""Merging classification results onto emails and ranking them.

The original email batch drives the output: every email yields exactly one
PrioritizedEmail, whether or not the classifier returned an entry for it.
Results for unknown ids are ignored.

Usage:
    from prioritizer.engine.ranking import prioritize

    ranked = prioritize(emails, results)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from prioritizer.core.logging import get_logger
from prioritizer.models import (
    FALLBACK_PRIORITY,
    FALLBACK_REASONING,
    PRIORITY_ORDER,
    VALID_PRIORITIES,
    NormalizedEmail,
    PrioritizedEmail,
)

if TYPE_CHECKING:
    from prioritizer.models import ClassificationResult, Priority

logger = get_logger(__name__)

DEFAULT_ORIGIN_URL_BASE = "https://mail.google.com/mail/u/0/#inbox/"

# Only the record fields are copied; annotations are recomputed on every merge
_EMAIL_FIELDS = set(NormalizedEmail.model_fields)


def build_origin_url(email_id: str, base: str = DEFAULT_ORIGIN_URL_BASE) -> str:
    """Deep link to the source message."""
    return f"{base}{email_id}"


def normalize_priority(value: str | None) -> Priority:
    """Map a raw priority to a valid tier; anything unrecognized becomes medium."""
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in VALID_PRIORITIES:
            return candidate  # type: ignore[return-value]
    return FALLBACK_PRIORITY


def merge_results(
    emails: Sequence[NormalizedEmail],
    results: Mapping[str, ClassificationResult],
    origin_url_base: str = DEFAULT_ORIGIN_URL_BASE,
) -> list[PrioritizedEmail]:
    """Attach a priority and reasoning to every email, in input order.

    Args:
        emails: The full original batch (not the truncated prompt batch)
        results: Classification results keyed by email id
        origin_url_base: Prefix for each email's deep link

    Returns:
        One PrioritizedEmail per input email
    """
    merged: list[PrioritizedEmail] = []
    unmatched = 0

    for email in emails:
        result = results.get(email.id)
        if result is None:
            unmatched += 1
            priority: Priority = FALLBACK_PRIORITY
            reasoning = FALLBACK_REASONING
        else:
            priority = normalize_priority(result.priority)
            reasoning = result.reasoning or FALLBACK_REASONING

        merged.append(
            PrioritizedEmail(
                **email.model_dump(include=_EMAIL_FIELDS),
                priority=priority,
                reasoning=reasoning,
                origin_url=build_origin_url(email.id, origin_url_base),
            )
        )

    if unmatched:
        logger.info("emails_without_analysis", count=unmatched, total=len(emails))

    return merged


def rank_emails(emails: Sequence[PrioritizedEmail]) -> list[PrioritizedEmail]:
    """Order emails high -> medium -> low.

    sorted() is stable, so emails sharing a tier keep their input order.
    """
    return sorted(emails, key=lambda email: -PRIORITY_ORDER[email.priority])


def prioritize(
    emails: Sequence[NormalizedEmail],
    results: Mapping[str, ClassificationResult],
    origin_url_base: str = DEFAULT_ORIGIN_URL_BASE,
) -> list[PrioritizedEmail]:
    """Merge results onto emails and rank them."""
    ranked = rank_emails(merge_results(emails, results, origin_url_base))
    logger.info("emails_ranked", count=len(ranked), **count_by_priority(ranked))

    return ranked


def count_by_priority(emails: Sequence[PrioritizedEmail]) -> dict[str, int]:
    """Count emails per tier, in ranking order."""
    counts = {tier: 0 for tier in PRIORITY_ORDER}
    for email in emails:
        counts[email.priority] += 1
    return counts
