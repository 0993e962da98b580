"""Custom exception types for the inbox prioritizer.

Error messages follow the same shape throughout:
- What failed (specific operation or component)
- Why it failed (the specific condition)
- How to fix it (actionable guidance, where there is any)

The web layer maps each type to an HTTP status code (see web/app.py).
"""


class PrioritizerError(Exception):
    """Base exception for all inbox prioritizer errors."""

    pass


class ConfigValidationError(PrioritizerError):
    """Raised when config.yaml fails Pydantic validation."""

    pass


class ConfigLoadError(PrioritizerError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class InvalidRequest(PrioritizerError):
    """Raised when a required input is missing or empty.

    Always caused by the caller; maps to HTTP 400.
    """

    pass


class MisconfiguredService(PrioritizerError):
    """Raised when a required service credential is not configured (HTTP 500)."""

    pass


class UpstreamUnavailable(PrioritizerError):
    """Raised when the mailbox or classification service returns a non-success status.

    Attributes:
        status_code: HTTP status code from the upstream service (propagated to the caller)
        service: Name of the upstream service ('gmail' or 'classifier')
    """

    def __init__(self, message: str, status_code: int = 502, service: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.service = service


class MailboxAPIError(UpstreamUnavailable):
    """Raised when the Gmail REST API returns an error."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code, service="gmail")


class ClassificationAPIError(UpstreamUnavailable):
    """Raised when the classification (LLM) API returns an error."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code, service="classifier")


class UpstreamFormatError(PrioritizerError):
    """Raised when the classification reply cannot be parsed into the expected shape.

    Fatal to the analysis request and never retried: a partial or garbled
    priority set is worse than none.

    Attributes:
        raw_text: The reply text that failed to parse
    """

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class MessageHydrationError(PrioritizerError):
    """Raised when a single message cannot be hydrated.

    This is a non-fatal error: the hydrator logs it and drops the message
    from the batch. It never reaches the caller.

    Attributes:
        message_id: The Gmail message ID that failed
        status_code: HTTP status code of the failed lookup (if any)
    """

    def __init__(self, message: str, message_id: str, status_code: int | None = None):
        super().__init__(message)
        self.message_id = message_id
        self.status_code = status_code
