"""Gmail API access.

Provides:
- Base REST client with bearer-token authorization and error translation
- Body decoding for single-blob and multi-part payloads
- Concurrent message hydration and batch fetching

Usage:
    from prioritizer.gmail import BatchFetcher, GmailClient, MessageHydrator

    client = GmailClient()
    fetcher = BatchFetcher(client, MessageHydrator(client))
    emails = await fetcher.fetch(access_token, max_results=10)
"""

from prioritizer.gmail.body import decode_body
from prioritizer.gmail.client import GmailClient
from prioritizer.gmail.messages import BatchFetcher, MessageHydrator, normalize_message

__all__ = [
    "BatchFetcher",
    "GmailClient",
    "MessageHydrator",
    "decode_body",
    "normalize_message",
]
