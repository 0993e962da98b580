"""Batch priority classification with Claude.

Sends one prompt per batch and parses the free-text reply into per-email
priority results.

Error handling strategy:
- The Anthropic client is built with max_retries=0: one round trip per batch
- API status errors surface as ClassificationAPIError with the upstream status
- Connection errors surface as ClassificationAPIError (502)
- An empty or unparseable reply raises UpstreamFormatError

Usage:
    from prioritizer.classifier.analyzer import EmailAnalyzer

    analyzer = EmailAnalyzer.from_config(config.analysis)
    results = analyzer.classify(emails)
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import anthropic

from prioritizer.classifier.prompts import build_classification_prompt, select_batch
from prioritizer.classifier.response import parse_or_raise
from prioritizer.core.errors import (
    ClassificationAPIError,
    MisconfiguredService,
    UpstreamFormatError,
)
from prioritizer.core.logging import get_logger

if TYPE_CHECKING:
    from prioritizer.config_schema import AnalysisConfig
    from prioritizer.models import ClassificationResult, NormalizedEmail

logger = get_logger(__name__)


class EmailAnalyzer:
    """Classifies a batch of emails by priority in a single LLM call.

    Attributes:
        _client: Anthropic API client (configured with max_retries=0)
        _config: Analysis configuration (model, limits, generation params)
    """

    def __init__(self, anthropic_client: anthropic.Anthropic, config: AnalysisConfig):
        """Initialize the analyzer.

        Args:
            anthropic_client: Anthropic API client
            config: Analysis configuration
        """
        self._client = anthropic_client
        self._config = config

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> EmailAnalyzer:
        """Build an analyzer and its Anthropic client from configuration.

        Raises:
            MisconfiguredService: If no API key is configured
        """
        if not config.api_key:
            raise MisconfiguredService(
                "Classification API key not configured. "
                "Set analysis.api_key in config.yaml or the ANTHROPIC_API_KEY environment variable."
            )
        client = anthropic.Anthropic(api_key=config.api_key, max_retries=0)
        return cls(client, config)

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def build_prompt(self, emails: Sequence[NormalizedEmail]) -> str:
        """Build the classification prompt using the configured limits."""
        return build_classification_prompt(
            emails,
            max_batch_size=self._config.max_batch_size,
            body_length=self._config.prompt_body_length,
        )

    def request_classification(self, prompt: str) -> str:
        """Send the prompt and return the reply text.

        Raises:
            ClassificationAPIError: If the API call fails
            UpstreamFormatError: If the reply contains no text
        """
        try:
            response = self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_output_tokens,
                temperature=self._config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as e:
            logger.error(
                "classification_api_error",
                status_code=e.status_code,
                error=str(e),
            )
            raise ClassificationAPIError(
                f"Failed to analyze emails: classification API returned {e.status_code}",
                status_code=e.status_code,
            ) from e
        except anthropic.APIConnectionError as e:
            logger.error("classification_connection_error", error=str(e))
            raise ClassificationAPIError(
                f"Failed to analyze emails: could not reach classification API ({e})",
                status_code=502,
            ) from e

        text = _extract_text(response)
        if not text:
            raise UpstreamFormatError("No response text from classification service")
        return text

    def classify(self, emails: Sequence[NormalizedEmail]) -> dict[str, ClassificationResult]:
        """Classify a batch of emails (blocking).

        Only the first max_batch_size emails are sent.

        Args:
            emails: Emails to classify

        Returns:
            Classification results keyed by email id

        Raises:
            ClassificationAPIError: If the API call fails
            UpstreamFormatError: If the reply cannot be parsed
        """
        batch = select_batch(emails, self._config.max_batch_size)
        prompt = self.build_prompt(batch)

        logger.info(
            "classification_requested",
            model=self._config.model,
            batch_size=len(batch),
            dropped=len(emails) - len(batch),
        )

        start_time = time.monotonic()
        reply = self.request_classification(prompt)
        duration_ms = int((time.monotonic() - start_time) * 1000)

        results = parse_or_raise(reply)

        logger.info(
            "classification_parsed",
            results=len(results),
            batch_size=len(batch),
            duration_ms=duration_ms,
        )
        return results


def _extract_text(response: Any) -> str:
    """Concatenate the text blocks of an Anthropic response."""
    return "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )
