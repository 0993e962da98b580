"""Structured logging configuration for the inbox prioritizer.

Uses structlog for JSON-formatted logs to stdout. Each pipeline operation
(fetch or analyze) opens a request context: a fresh ``request_id`` and the
``operation`` name are bound with structlog's contextvars and merged into
every entry logged while the operation runs, including entries from the
hydrator's worker threads (asyncio.to_thread copies the context).

Credentials never reach the output: values under credential-like keys are
replaced before rendering.

Usage:
    from prioritizer.core.logging import begin_request, get_logger

    logger = get_logger(__name__)

    # At the start of a pipeline operation:
    begin_request("analyze")

    # request_id and operation are added automatically:
    logger.info("emails_ranked", count=12, high=3)
"""

import logging
import sys
import uuid
from typing import Any

import structlog

OPERATION_FETCH = "fetch"
OPERATION_ANALYZE = "analyze"

REDACTED = "[redacted]"

# Event keys whose values are never rendered
SENSITIVE_KEYS = frozenset({"access_token", "token", "authorization", "api_key"})


def begin_request(operation: str, request_id: str | None = None) -> str:
    """Open a fresh logging context for one pipeline operation.

    Anything bound by a previous operation in this context is discarded.

    Args:
        operation: Operation name (OPERATION_FETCH or OPERATION_ANALYZE)
        request_id: Correlation id to use; a new UUID when omitted

    Returns:
        The request_id bound for this operation
    """
    request_id = request_id or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, operation=operation)
    return request_id


def get_request_context() -> dict[str, Any]:
    """Return the values bound for the current operation (empty outside one)."""
    return structlog.contextvars.get_contextvars()


def redact_secrets(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor replacing credential values with a marker."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: JSON lines for the server, coloured console output otherwise
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module (pass __name__)."""
    return structlog.get_logger(name)
