"""Message hydration and batch fetching for the Gmail API.

This module turns bare message ids into NormalizedEmail records:
- MessageHydrator fetches every id concurrently and normalizes each reply
- BatchFetcher lists the newest ids and drives the hydrator over them

A message that fails to hydrate is logged and dropped; the batch carries on
with the rest. A listing failure is fatal for the request.

Usage:
    from prioritizer.gmail.client import GmailClient
    from prioritizer.gmail.messages import BatchFetcher, MessageHydrator

    client = GmailClient()
    fetcher = BatchFetcher(client, MessageHydrator(client))

    emails = await fetcher.fetch(access_token, max_results=10)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from prioritizer.core.errors import InvalidRequest, MessageHydrationError, PrioritizerError
from prioritizer.core.logging import get_logger
from prioritizer.gmail.body import DEFAULT_BODY_MAX_LENGTH, decode_body
from prioritizer.models import DEFAULT_SENDER, DEFAULT_SUBJECT, NormalizedEmail

if TYPE_CHECKING:
    from prioritizer.gmail.client import GmailClient

logger = get_logger(__name__)

DEFAULT_MAX_RESULTS = 10


def find_header(headers: list[dict[str, Any]], name: str) -> str | None:
    """Return the value of the first header whose name matches exactly.

    Matching is case-sensitive, as Gmail returns canonical header names.
    """
    for header in headers:
        if isinstance(header, dict) and header.get("name") == name:
            value = header.get("value")
            return value if isinstance(value, str) else None
    return None


def normalize_message(
    message_id: str,
    detail: dict[str, Any],
    body_max_length: int = DEFAULT_BODY_MAX_LENGTH,
) -> NormalizedEmail:
    """Build a NormalizedEmail from a Gmail message resource.

    Args:
        message_id: Id from the listing call
        detail: Message resource returned by users.messages.get
        body_max_length: Maximum decoded body characters kept

    Returns:
        NormalizedEmail with header defaults applied
    """
    payload = detail.get("payload") or {}
    headers = payload.get("headers") or []

    return NormalizedEmail(
        id=message_id,
        subject=find_header(headers, "Subject") or DEFAULT_SUBJECT,
        sender=find_header(headers, "From") or DEFAULT_SENDER,
        date=find_header(headers, "Date") or "",
        snippet=detail.get("snippet") or "",
        body=decode_body(payload, max_length=body_max_length),
    )


class MessageHydrator:
    """Hydrates message ids into NormalizedEmail records.

    Every id gets its own worker thread; the hydrator waits for all of them
    to settle and keeps the successes in listing order. One failed lookup
    never cancels its siblings.

    Attributes:
        client: GmailClient used for per-message lookups
        body_max_length: Maximum decoded body characters kept per message
    """

    def __init__(
        self,
        client: GmailClient,
        body_max_length: int = DEFAULT_BODY_MAX_LENGTH,
    ):
        self.client = client
        self.body_max_length = body_max_length

    def hydrate_one(self, access_token: str, message_id: str) -> NormalizedEmail:
        """Fetch and normalize a single message (blocking).

        Raises:
            MessageHydrationError: If the lookup fails
        """
        try:
            detail = self.client.get_message(access_token, message_id)
        except PrioritizerError as e:
            raise MessageHydrationError(
                f"Failed to fetch email {message_id}: {e}",
                message_id=message_id,
                status_code=getattr(e, "status_code", None),
            ) from e

        return normalize_message(message_id, detail, self.body_max_length)

    async def hydrate(
        self,
        access_token: str,
        message_ids: list[str],
    ) -> list[NormalizedEmail]:
        """Hydrate a batch of message ids concurrently.

        Args:
            access_token: OAuth bearer token for the mailbox owner
            message_ids: Ids to hydrate, in listing order

        Returns:
            NormalizedEmail records for the ids that hydrated successfully,
            in listing order

        Raises:
            InvalidRequest: If the token is missing (before any fetch)
        """
        if not access_token:
            raise InvalidRequest("Access token is required")

        if not message_ids:
            return []

        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(self.hydrate_one, access_token, message_id)
                for message_id in message_ids
            ),
            return_exceptions=True,
        )

        emails: list[NormalizedEmail] = []
        for message_id, outcome in zip(message_ids, outcomes, strict=True):
            if isinstance(outcome, NormalizedEmail):
                emails.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                # CancelledError and friends must not be swallowed
                raise outcome
            logger.warning(
                "message_hydration_failed",
                message_id=message_id,
                status_code=getattr(outcome, "status_code", None),
                error=str(outcome),
            )

        logger.info(
            "messages_hydrated",
            requested=len(message_ids),
            hydrated=len(emails),
            dropped=len(message_ids) - len(emails),
        )
        return emails


class BatchFetcher:
    """Lists the newest message ids and hydrates them.

    Attributes:
        client: GmailClient used for the listing call
        hydrator: MessageHydrator that turns ids into records
        default_max_results: Cap used when the caller gives none
    """

    def __init__(
        self,
        client: GmailClient,
        hydrator: MessageHydrator,
        default_max_results: int = DEFAULT_MAX_RESULTS,
    ):
        self.client = client
        self.hydrator = hydrator
        self.default_max_results = default_max_results

    def list_message_ids(self, access_token: str, max_results: int) -> list[str]:
        """List up to max_results message ids (blocking).

        Returns:
            Message ids in listing order; [] for an empty mailbox

        Raises:
            MailboxAPIError: If the listing call fails (fatal for the request)
        """
        listing = self.client.list_messages(access_token, max_results=max_results)
        refs = listing.get("messages") or []
        ids = [ref["id"] for ref in refs if isinstance(ref, dict) and ref.get("id")]
        return ids[:max_results]

    async def fetch(
        self,
        access_token: str,
        max_results: int | None = None,
    ) -> list[NormalizedEmail]:
        """List and hydrate up to max_results messages.

        Args:
            access_token: OAuth bearer token for the mailbox owner
            max_results: Maximum messages to return (default: default_max_results)

        Returns:
            Hydrated emails in listing order (possibly fewer than max_results)

        Raises:
            InvalidRequest: If the token is missing or max_results < 1
            MailboxAPIError: If the listing call fails
        """
        if not access_token:
            raise InvalidRequest("Access token is required")

        limit = self.default_max_results if max_results is None else max_results
        if limit < 1:
            raise InvalidRequest(f"maxResults must be at least 1, got {limit}")

        message_ids = await asyncio.to_thread(self.list_message_ids, access_token, limit)

        logger.info("messages_listed", max_results=limit, count=len(message_ids))

        if not message_ids:
            return []

        return await self.hydrator.hydrate(access_token, message_ids)
