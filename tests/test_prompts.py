"""Tests for the classification prompt builder."""

import json

from prioritizer.classifier.prompts import (
    RESPONSE_FORMAT_EXAMPLE,
    build_classification_prompt,
    format_email_for_prompt,
    select_batch,
)
from prioritizer.models import NormalizedEmail


def _email(email_id: str, body: str = "body text", snippet: str = "snippet") -> NormalizedEmail:
    return NormalizedEmail(
        id=email_id,
        subject=f"Subject {email_id}",
        sender="Alice <alice@example.com>",
        date="Tue, 2 Jan 2024 10:00:00 +0000",
        snippet=snippet,
        body=body,
    )


def _embedded_emails(prompt: str) -> list[dict]:
    """Pull the JSON array embedded between the two prompt headings."""
    start = prompt.index("Emails to analyze:\n") + len("Emails to analyze:\n")
    end = prompt.index("\n\nResponse format:")
    return json.loads(prompt[start:end])


def test_format_email_uses_from_key():
    record = format_email_for_prompt(_email("a"))

    assert record == {
        "id": "a",
        "subject": "Subject a",
        "from": "Alice <alice@example.com>",
        "snippet": "snippet",
        "body": "body text",
    }


def test_format_email_clips_body():
    record = format_email_for_prompt(_email("a", body="x" * 300), body_length=200)
    assert record["body"] == "x" * 200


def test_format_email_empty_body_falls_back_to_snippet():
    record = format_email_for_prompt(_email("a", body="", snippet="preview"))
    assert record["body"] == "preview"


def test_select_batch_keeps_first_n():
    emails = [_email(str(i)) for i in range(5)]
    assert [e.id for e in select_batch(emails, 3)] == ["0", "1", "2"]


def test_prompt_contains_criteria_and_format():
    prompt = build_classification_prompt([_email("a")])

    assert "categorize each by priority (high, medium, low)" in prompt
    assert "Sender importance" in prompt
    assert "Time sensitivity" in prompt
    assert "Return a JSON array with each email having: id, priority, reasoning" in prompt
    assert prompt.endswith(RESPONSE_FORMAT_EXAMPLE)


def test_prompt_embeds_batch_as_json():
    prompt = build_classification_prompt([_email("a"), _email("b")])

    embedded = _embedded_emails(prompt)

    assert [e["id"] for e in embedded] == ["a", "b"]
    assert embedded[0]["from"] == "Alice <alice@example.com>"


def test_prompt_truncates_batch():
    emails = [_email(str(i)) for i in range(120)]

    embedded = _embedded_emails(build_classification_prompt(emails, max_batch_size=100))

    assert len(embedded) == 100
    assert embedded[-1]["id"] == "99"


def test_prompt_keeps_non_ascii_text():
    prompt = build_classification_prompt([_email("a", body="Réunion à 10h")])
    assert "Réunion à 10h" in prompt
