"""Body decoding for Gmail message payloads.

A Gmail ``payload`` either carries the whole body as a single base64url
blob (``payload.body.data``) or a tree of MIME ``parts``, each with a
``mimeType`` and an optional blob. The decoder turns either shape into one
plain-text string, bounded in length.

Policy: a top-level blob wins. Otherwise the first ``text/plain`` part with
data found by a depth-first walk is used and the walk stops there. Later
plain-text parts and all HTML parts are ignored.

Usage:
    from prioritizer.gmail.body import decode_body

    text = decode_body(message["payload"], max_length=500)
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterator
from typing import Any

from prioritizer.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BODY_MAX_LENGTH = 500
TRUNCATION_MARKER = "..."
PLAIN_TEXT_MIME_TYPE = "text/plain"


def decode_base64url(data: str) -> str:
    """Decode a base64url blob into text.

    Never raises: malformed input is logged and yields an empty string.

    Args:
        data: base64url-encoded string (padding optional)

    Returns:
        Decoded text (UTF-8, undecodable bytes replaced)
    """
    standard = data.replace("-", "+").replace("_", "/")
    standard += "=" * (-len(standard) % 4)
    try:
        raw = base64.b64decode(standard, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning("body_decode_failed", error=str(e), length=len(data))
        return ""
    return raw.decode("utf-8", errors="replace")


def truncate_text(text: str, max_length: int) -> str:
    """Clip text to max_length characters, appending a marker when clipped."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + TRUNCATION_MARKER


def _iter_parts(parts: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    """Yield MIME parts depth-first, in document order."""
    for part in parts:
        if not isinstance(part, dict):
            continue
        yield part
        nested = part.get("parts")
        if isinstance(nested, list):
            yield from _iter_parts(nested)


def _blob(node: dict[str, Any]) -> str | None:
    body = node.get("body")
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if isinstance(data, str) and data:
        return data
    return None


def extract_body_data(payload: dict[str, Any] | None) -> str | None:
    """Find the encoded blob the body should be decoded from.

    Args:
        payload: Gmail message payload (may be None)

    Returns:
        The base64url blob, or None when the payload has no usable content
    """
    if not payload:
        return None

    top_level = _blob(payload)
    if top_level is not None:
        return top_level

    parts = payload.get("parts")
    if not isinstance(parts, list):
        return None

    for part in _iter_parts(parts):
        if part.get("mimeType") != PLAIN_TEXT_MIME_TYPE:
            continue
        data = _blob(part)
        if data is not None:
            return data

    return None


def decode_body(
    payload: dict[str, Any] | None,
    max_length: int = DEFAULT_BODY_MAX_LENGTH,
) -> str:
    """Decode a Gmail payload into a bounded plain-text body.

    Args:
        payload: Gmail message payload
        max_length: Maximum characters kept before the truncation marker

    Returns:
        Decoded body, "" when there is no decodable content
    """
    data = extract_body_data(payload)
    if data is None:
        return ""
    return truncate_text(decode_base64url(data), max_length)
