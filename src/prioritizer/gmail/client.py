"""Gmail REST API client.

This module provides a thin HTTP client for the Gmail API:
- Bearer-token authorization supplied per call (the caller owns the session)
- Error responses translated into MailboxAPIError with the upstream status
- Request/response logging for debugging

No retry or backoff is performed: a failed call is reported once and the
caller decides whether to re-invoke.

Usage:
    from prioritizer.gmail.client import GmailClient

    client = GmailClient()
    listing = client.list_messages(access_token, max_results=10)
    detail = client.get_message(access_token, listing["messages"][0]["id"])
"""

from typing import Any

import requests

from prioritizer.core.errors import InvalidRequest, MailboxAPIError
from prioritizer.core.logging import get_logger

logger = get_logger(__name__)

# Gmail API base URL
GMAIL_BASE_URL = "https://gmail.googleapis.com/gmail/v1"

DEFAULT_TIMEOUT = 30.0


class GmailClient:
    """Gmail API client for the authenticated user's mailbox.

    The client is safe to share between the hydrator's worker threads: it
    keeps no per-request state beyond the pooled requests.Session.

    Attributes:
        base_url: Gmail API base URL
        timeout: Transport timeout for each request (seconds)
        session: Shared requests.Session for connection pooling

    Example:
        client = GmailClient()

        # List message ids
        listing = client.list_messages(token, max_results=5)

        # Fetch one message
        detail = client.get_message(token, "18c2f0a9e1b2c3d4")
    """

    def __init__(
        self,
        base_url: str = GMAIL_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """Initialize the Gmail API client.

        Args:
            base_url: Gmail API base URL
            timeout: Transport timeout in seconds
            session: Optional pre-built session (tests inject a mock)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        logger.debug("GmailClient initialized", base_url=self.base_url)

    def _get_headers(self, access_token: str) -> dict[str, str]:
        """Build request headers for a bearer token.

        Raises:
            InvalidRequest: If the token is empty
        """
        if not access_token:
            raise InvalidRequest("Access token is required")
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _make_url(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return self.base_url + endpoint

    def _handle_error_response(self, response: requests.Response, endpoint: str) -> None:
        """Translate an error response into MailboxAPIError.

        Raises:
            MailboxAPIError: Always, carrying the upstream status code
        """
        try:
            error_info = response.json().get("error", {})
            error_message = error_info.get("message", response.text)
        except (ValueError, AttributeError):
            error_message = response.text or f"HTTP {response.status_code}"

        logger.error(
            "Gmail API error",
            endpoint=endpoint,
            status_code=response.status_code,
            error_message=str(error_message)[:200],
        )

        if response.status_code == 401:
            raise MailboxAPIError(
                f"Gmail authentication failed (401): {error_message}. "
                "The access token may have expired; sign in again to refresh it.",
                status_code=401,
            )
        if response.status_code == 403:
            raise MailboxAPIError(
                f"Gmail permission denied (403): {error_message}. "
                "Check that the token was granted the gmail.readonly scope.",
                status_code=403,
            )
        raise MailboxAPIError(
            f"Gmail API error ({response.status_code}): {error_message}",
            status_code=response.status_code,
        )

    def get(
        self,
        access_token: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a GET request to the Gmail API.

        Args:
            access_token: OAuth bearer token for the mailbox owner
            endpoint: API endpoint path (e.g., "/users/me/messages")
            params: URL query parameters

        Returns:
            Parsed JSON response

        Raises:
            InvalidRequest: If the token is empty
            MailboxAPIError: For error responses and transport failures
        """
        headers = self._get_headers(access_token)
        url = self._make_url(endpoint)

        logger.debug(
            "Gmail API request",
            endpoint=endpoint,
            params=list(params.keys()) if params else None,
        )

        try:
            response = self.session.get(
                url,
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise MailboxAPIError(
                f"Request to {endpoint} timed out after {self.timeout}s",
                status_code=504,
            ) from None
        except requests.exceptions.ConnectionError as e:
            raise MailboxAPIError(
                f"Connection to Gmail failed: {e}",
                status_code=502,
            ) from e

        if response.status_code >= 400:
            self._handle_error_response(response, endpoint)

        return response.json()

    def list_messages(self, access_token: str, max_results: int) -> dict[str, Any]:
        """List message ids in the mailbox, newest first.

        Returns:
            Raw listing; ``messages`` is absent when the mailbox is empty
        """
        return self.get(
            access_token,
            "/users/me/messages",
            params={"maxResults": max_results},
        )

    def get_message(self, access_token: str, message_id: str) -> dict[str, Any]:
        """Fetch one message with headers, snippet and payload."""
        return self.get(access_token, f"/users/me/messages/{message_id}")
