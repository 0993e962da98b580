"""HTTP routes for the inbox prioritizer.

Two operations, each a JSON POST with an explicit pre-flight handler:
- gmail-fetch: list + hydrate the newest messages
- gmail-analyze: rank a batch of messages by priority

Errors are always ``{"error": "..."}`` bodies. Typed pipeline errors are
mapped to status codes by the handlers in web/app.py; anything else is
reported here as a 500 with the exception message.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from prioritizer.core.errors import PrioritizerError
from prioritizer.core.logging import get_logger
from prioritizer.engine.pipeline import PrioritizationPipeline
from prioritizer.models import NormalizedEmail
from prioritizer.web.dependencies import get_pipeline

logger = get_logger(__name__)

VERSION = "0.1.0"

api_router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic models for API input validation
# ---------------------------------------------------------------------------


class FetchRequest(BaseModel):
    """Request body for the List+Hydrate operation."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str | None = Field(default=None, alias="accessToken")
    max_results: int | None = Field(default=None, alias="maxResults")


class AnalyzeRequest(BaseModel):
    """Request body for the Analyze operation."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str | None = Field(default=None, alias="accessToken")
    emails: list[NormalizedEmail] | None = None


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the JSON error body shared by every failure path."""
    return JSONResponse(status_code=status_code, content={"error": message})


def _preflight_response(request: Request) -> Response:
    """Answer a pre-flight request with 200 and no body.

    Requested headers are echoed back; the origin and the default allow
    headers are added by the CORS middleware in web/app.py.
    """
    headers = {"Access-Control-Allow-Methods": "POST, OPTIONS"}
    requested = request.headers.get("access-control-request-headers")
    if requested:
        headers["Access-Control-Allow-Headers"] = requested
    return Response(status_code=200, headers=headers)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@api_router.options("/gmail-fetch", include_in_schema=False)
async def gmail_fetch_preflight(request: Request) -> Response:
    return _preflight_response(request)


@api_router.post("/gmail-fetch")
async def gmail_fetch(
    body: FetchRequest,
    pipeline: PrioritizationPipeline = Depends(get_pipeline),
):
    """List and hydrate the newest messages in the caller's mailbox."""
    try:
        emails = await pipeline.fetch_emails(body.access_token, body.max_results)
    except PrioritizerError:
        raise
    except Exception as e:
        logger.exception("gmail_fetch_failed", error=str(e))
        return error_response(500, str(e))

    return {"messages": [email.model_dump(by_alias=True) for email in emails]}


@api_router.options("/gmail-analyze", include_in_schema=False)
async def gmail_analyze_preflight(request: Request) -> Response:
    return _preflight_response(request)


@api_router.post("/gmail-analyze")
async def gmail_analyze(
    body: AnalyzeRequest,
    pipeline: PrioritizationPipeline = Depends(get_pipeline),
):
    """Rank a batch of messages by priority."""
    try:
        ranked = await pipeline.analyze_emails(body.access_token, body.emails)
    except PrioritizerError:
        raise
    except Exception as e:
        logger.exception("gmail_analyze_failed", error=str(e))
        return error_response(500, str(e))

    return {"prioritizedEmails": [email.model_dump(by_alias=True) for email in ranked]}


@api_router.get("/health")
async def health_check(request: Request):
    """Health check endpoint for Docker and monitoring."""
    pipeline = getattr(request.app.state, "pipeline", None)
    analyzer_configured = bool(pipeline and pipeline.analyzer_configured)

    return {
        "status": "healthy" if analyzer_configured else "degraded",
        "analyzer_configured": analyzer_configured,
        "version": VERSION,
    }
