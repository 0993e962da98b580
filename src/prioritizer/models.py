"""Data model for the fetch-normalize-prioritize pipeline.

NormalizedEmail and PrioritizedEmail cross the HTTP boundary, so they are
Pydantic models serialized with the camelCase/`from` field names clients
expect. ClassificationResult never leaves the process and is a plain
frozen dataclass.

Usage:
    from prioritizer.models import NormalizedEmail

    email = NormalizedEmail(id="18c2", subject="Hi", sender="a@b.com")
    email.model_dump(by_alias=True)  # {"id": "18c2", ..., "from": "a@b.com", ...}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Priority = Literal["high", "medium", "low"]

VALID_PRIORITIES: frozenset[str] = frozenset({"high", "medium", "low"})

# Ordinal used for ranking; higher sorts first
PRIORITY_ORDER: dict[str, int] = {"high": 3, "medium": 2, "low": 1}

FALLBACK_PRIORITY: Priority = "medium"
FALLBACK_REASONING = "No analysis available"

DEFAULT_SUBJECT = "No Subject"
DEFAULT_SENDER = "Unknown Sender"


class NormalizedEmail(BaseModel):
    """A mail message reduced to a flat record after hydration.

    Attributes:
        id: Gmail message ID (opaque, never empty)
        subject: Subject header, or "No Subject"
        sender: From header (serialized as "from"), or "Unknown Sender"
        date: Date header in its original textual form, not reparsed
        snippet: Gmail's plain-text preview
        body: Decoded body, truncated by the Body Decoder
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    subject: str = DEFAULT_SUBJECT
    sender: str = Field(default=DEFAULT_SENDER, alias="from")
    date: str = ""
    snippet: str = ""
    body: str = ""

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Reject whitespace-only identifiers."""
        if not v.strip():
            raise ValueError("Email id cannot be empty")
        return v


class PrioritizedEmail(NormalizedEmail):
    """A NormalizedEmail annotated with its priority tier and a deep link."""

    priority: Priority = FALLBACK_PRIORITY
    reasoning: str = FALLBACK_REASONING
    origin_url: str = Field(default="", alias="originUrl")


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """One per-email entry parsed from the classification reply.

    Attributes:
        id: Message ID the entry refers to (may not exist in the batch)
        priority: Priority as returned by the model, not yet validated
        reasoning: Short explanation from the model ("" when absent)
    """

    id: str
    priority: str | None
    reasoning: str
