"""Prompt builder for batch priority classification.

Builds one plain-text prompt per batch: task instructions listing the
priority criteria, the expected JSON reply shape, and the batch itself
serialized as indented JSON. Unlike tool-use prompts, the reply is free
text and goes through the response parser.

Usage:
    from prioritizer.classifier.prompts import build_classification_prompt

    prompt = build_classification_prompt(emails)
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from prioritizer.models import NormalizedEmail

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_PROMPT_BODY_LENGTH = 200


# ---------------------------------------------------------------------------
# Prompt template
# ---------------------------------------------------------------------------

RESPONSE_FORMAT_EXAMPLE = """\
[
  {
    "id": "email_id",
    "priority": "high|medium|low",
    "reasoning": "brief explanation"
  }
]\
"""

CLASSIFICATION_PROMPT_TEMPLATE = """\
Analyze these emails and categorize each by priority (high, medium, low). \
Consider factors like:
- Sender importance (official, work, personal)
- Subject urgency keywords
- Content importance
- Time sensitivity

Return a JSON array with each email having: id, priority, reasoning

Emails to analyze:
{emails_json}

Response format:
{response_format}"""


def select_batch(
    emails: Sequence[NormalizedEmail],
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
) -> list[NormalizedEmail]:
    """Keep the first max_batch_size emails; the rest are dropped, not sampled."""
    return list(emails[:max_batch_size])


def format_email_for_prompt(
    email: NormalizedEmail,
    body_length: int = DEFAULT_PROMPT_BODY_LENGTH,
) -> dict[str, Any]:
    """Reduce one email to the fields embedded in the prompt.

    The body is clipped to body_length characters; an empty body falls
    back to the snippet.
    """
    return {
        "id": email.id,
        "subject": email.subject,
        "from": email.sender,
        "snippet": email.snippet,
        "body": email.body[:body_length] or email.snippet,
    }


def build_classification_prompt(
    emails: Sequence[NormalizedEmail],
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    body_length: int = DEFAULT_PROMPT_BODY_LENGTH,
) -> str:
    """Build the classification prompt for a batch of emails.

    Args:
        emails: Emails to classify (only the first max_batch_size are used)
        max_batch_size: Maximum emails embedded in the prompt
        body_length: Maximum body characters per email

    Returns:
        Prompt text for a single classification request
    """
    records = [
        format_email_for_prompt(email, body_length)
        for email in select_batch(emails, max_batch_size)
    ]
    return CLASSIFICATION_PROMPT_TEMPLATE.format(
        emails_json=json.dumps(records, indent=2, ensure_ascii=False),
        response_format=RESPONSE_FORMAT_EXAMPLE,
    )
