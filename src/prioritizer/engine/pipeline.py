"""Fetch-normalize-prioritize pipeline.

Ties the Gmail batch fetcher, the Claude analyzer and the ranker together
behind the two operations exposed to callers:

- fetch_emails: list + hydrate the newest messages
- analyze_emails: classify a batch and return it ranked by priority

Each call is independent: the pipeline keeps no per-request state and binds
a fresh request_id and the operation name into the logging context.

Usage:
    from prioritizer.engine.pipeline import PrioritizationPipeline

    pipeline = PrioritizationPipeline.from_config(config)
    emails = await pipeline.fetch_emails(access_token, max_results=10)
    ranked = await pipeline.analyze_emails(access_token, emails)
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING

from prioritizer.core.errors import InvalidRequest, MisconfiguredService
from prioritizer.core.logging import (
    OPERATION_ANALYZE,
    OPERATION_FETCH,
    begin_request,
    get_logger,
)
from prioritizer.engine.ranking import prioritize

if TYPE_CHECKING:
    from prioritizer.classifier.analyzer import EmailAnalyzer
    from prioritizer.config_schema import AppConfig
    from prioritizer.gmail.messages import BatchFetcher
    from prioritizer.models import NormalizedEmail, PrioritizedEmail

logger = get_logger(__name__)


class PrioritizationPipeline:
    """Runs the fetch and analyze operations.

    Attributes:
        fetcher: BatchFetcher for the List+Hydrate operation
        analyzer: EmailAnalyzer, or None when the classification key is missing
        max_results_limit: Upper bound for a caller-supplied max_results
        origin_url_base: Prefix for each prioritized email's deep link
    """

    def __init__(
        self,
        fetcher: BatchFetcher,
        analyzer: EmailAnalyzer | None,
        max_results_limit: int = 500,
        origin_url_base: str = "https://mail.google.com/mail/u/0/#inbox/",
        analyzer_error: str | None = None,
    ):
        """Initialize the pipeline.

        Args:
            fetcher: Batch fetcher for Gmail
            analyzer: Claude analyzer (None disables analyze_emails)
            max_results_limit: Upper bound for max_results
            origin_url_base: Prefix for deep links
            analyzer_error: Why the analyzer is unavailable (reported to callers)
        """
        self.fetcher = fetcher
        self.analyzer = analyzer
        self.max_results_limit = max_results_limit
        self.origin_url_base = origin_url_base
        self._analyzer_error = analyzer_error

    @classmethod
    def from_config(cls, config: AppConfig) -> PrioritizationPipeline:
        """Build the pipeline and its collaborators from configuration.

        A missing classification key does not prevent construction: the
        fetch operation still works and analyze_emails reports
        MisconfiguredService.
        """
        from prioritizer.classifier.analyzer import EmailAnalyzer
        from prioritizer.gmail.client import GmailClient
        from prioritizer.gmail.messages import BatchFetcher, MessageHydrator

        client = GmailClient(
            base_url=config.gmail.api_base_url,
            timeout=config.gmail.timeout_seconds,
        )
        fetcher = BatchFetcher(
            client,
            MessageHydrator(client, body_max_length=config.gmail.body_max_length),
            default_max_results=config.gmail.default_max_results,
        )

        analyzer: EmailAnalyzer | None = None
        analyzer_error: str | None = None
        try:
            analyzer = EmailAnalyzer.from_config(config.analysis)
        except MisconfiguredService as e:
            analyzer_error = str(e)
            logger.warning("analyzer_unavailable", error=analyzer_error)

        return cls(
            fetcher=fetcher,
            analyzer=analyzer,
            max_results_limit=config.gmail.max_results_limit,
            origin_url_base=config.analysis.origin_url_base,
            analyzer_error=analyzer_error,
        )

    @property
    def analyzer_configured(self) -> bool:
        return self.analyzer is not None

    async def fetch_emails(
        self,
        access_token: str | None,
        max_results: int | None = None,
    ) -> list[NormalizedEmail]:
        """List and hydrate the newest messages.

        Args:
            access_token: OAuth bearer token for the mailbox owner
            max_results: Maximum messages to return (default from config)

        Returns:
            Normalized emails, possibly fewer than requested

        Raises:
            InvalidRequest: If the token is missing or max_results is out of range
            MailboxAPIError: If the listing call fails
        """
        begin_request(OPERATION_FETCH)

        if not access_token:
            raise InvalidRequest("Access token is required")
        if max_results is not None and not 1 <= max_results <= self.max_results_limit:
            raise InvalidRequest(
                f"maxResults must be between 1 and {self.max_results_limit}, got {max_results}"
            )

        emails = await self.fetcher.fetch(access_token, max_results)
        logger.info("fetch_complete", count=len(emails))
        return emails

    async def analyze_emails(
        self,
        access_token: str | None,
        emails: Sequence[NormalizedEmail] | None,
    ) -> list[PrioritizedEmail]:
        """Classify a batch of emails and return it ranked by priority.

        Args:
            access_token: OAuth bearer token (required, proves a signed-in caller)
            emails: Emails to rank; only the first max_batch_size are classified,
                but every email appears in the output

        Returns:
            One PrioritizedEmail per input email, high priority first

        Raises:
            InvalidRequest: If the token is missing or the batch is empty
            MisconfiguredService: If the classification key is not configured
            ClassificationAPIError: If the classification call fails
            UpstreamFormatError: If the reply cannot be parsed
        """
        begin_request(OPERATION_ANALYZE)

        if self.analyzer is None:
            raise MisconfiguredService(
                self._analyzer_error or "Classification API key not configured"
            )
        if not access_token or not emails:
            raise InvalidRequest("Access token and emails are required")

        results = await asyncio.to_thread(self.analyzer.classify, emails)
        ranked = prioritize(emails, results, self.origin_url_base)

        logger.info("analysis_complete", count=len(ranked), classified=len(results))
        return ranked
