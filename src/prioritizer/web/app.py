"""FastAPI application exposing the prioritization pipeline.

Creates the FastAPI app with:
- Lifespan context manager for config loading and pipeline construction
- CORS headers added to every response; pre-flights answered by the routes
- Exception handlers mapping pipeline errors to ``{"error"}`` responses
- The operation router, mounted at ``/`` and at ``/functions/v1``

Usage:
    from prioritizer.web.app import create_app

    app = create_app()
    # Run with: uvicorn.run(app, host="127.0.0.1", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from prioritizer.config_schema import WebConfig
from prioritizer.core.errors import (
    InvalidRequest,
    MisconfiguredService,
    PrioritizerError,
    UpstreamFormatError,
    UpstreamUnavailable,
)
from prioritizer.core.logging import get_logger
from prioritizer.web.routes import VERSION, error_response

if TYPE_CHECKING:
    from prioritizer.config_schema import AppConfig

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load config and build the pipeline on startup.

    If config cannot be loaded the app still starts; every operation then
    answers 500 until the configuration is fixed and the service restarted.
    """
    from prioritizer.config import get_config
    from prioritizer.engine.pipeline import PrioritizationPipeline

    try:
        config = get_config()
    except PrioritizerError as e:
        logger.error("config_load_failed", error=str(e))
        app.state.config = None
        app.state.pipeline = None
        yield
        return

    app.state.config = config
    app.state.pipeline = PrioritizationPipeline.from_config(config)

    logger.info(
        "service_started",
        analyzer_configured=app.state.pipeline.analyzer_configured,
    )

    yield

    logger.info("service_stopped")


def cors_headers(web_config: WebConfig, origin: str | None) -> dict[str, str]:
    """CORS headers for a response, given the request's Origin.

    Headers a route already set (a pre-flight echoing the requested
    headers) take precedence; see add_cors_headers in create_app.
    """
    headers = {
        "Access-Control-Allow-Headers": ", ".join(web_config.cors_allow_headers),
        "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    }
    if "*" in web_config.cors_allow_origins:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin and origin in web_config.cors_allow_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
    return headers


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def _invalid_request_handler(request: Request, exc: InvalidRequest):
    logger.info("invalid_request", path=request.url.path, error=str(exc))
    return error_response(400, str(exc))


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    logger.info("invalid_request_body", path=request.url.path, error=details)
    return error_response(400, f"Invalid request body: {details}")


async def _upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable):
    logger.warning(
        "upstream_unavailable",
        path=request.url.path,
        service=exc.service,
        status_code=exc.status_code,
    )
    return error_response(exc.status_code, str(exc))


async def _upstream_format_handler(request: Request, exc: UpstreamFormatError):
    return error_response(500, str(exc))


async def _misconfigured_handler(request: Request, exc: MisconfiguredService):
    logger.error("service_misconfigured", path=request.url.path, error=str(exc))
    return error_response(500, str(exc))


async def _prioritizer_error_handler(request: Request, exc: PrioritizerError):
    logger.error("request_failed", path=request.url.path, error=str(exc))
    return error_response(500, str(exc))


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional config used for the CORS policy (defaults otherwise).
            The pipeline itself is built from get_config() in the lifespan.

    Returns:
        Configured FastAPI instance
    """
    from prioritizer.web.routes import api_router

    web_config = config.web if config else WebConfig()

    app = FastAPI(
        title="Inbox Prioritizer",
        description="Fetch recent Gmail messages and rank them by urgency",
        version=VERSION,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in cors_headers(web_config, request.headers.get("origin")).items():
            response.headers.setdefault(name, value)
        return response

    app.add_exception_handler(InvalidRequest, _invalid_request_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(UpstreamUnavailable, _upstream_unavailable_handler)
    app.add_exception_handler(UpstreamFormatError, _upstream_format_handler)
    app.add_exception_handler(MisconfiguredService, _misconfigured_handler)
    app.add_exception_handler(PrioritizerError, _prioritizer_error_handler)

    app.include_router(api_router)
    app.include_router(api_router, prefix="/functions/v1")

    return app
