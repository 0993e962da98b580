"""FastAPI dependency injection helpers.

Extracts shared dependencies from app.state for use in route handlers.
All dependencies are initialized during the FastAPI lifespan.

Usage:
    from prioritizer.web.dependencies import get_pipeline

    @router.post("/gmail-fetch")
    async def fetch(pipeline: PrioritizationPipeline = Depends(get_pipeline)):
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from prioritizer.core.errors import MisconfiguredService

if TYPE_CHECKING:
    from prioritizer.engine.pipeline import PrioritizationPipeline


def get_pipeline(request: Request) -> PrioritizationPipeline:
    """Get the PrioritizationPipeline from app state.

    Raises:
        MisconfiguredService: If startup could not build the pipeline
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise MisconfiguredService(
            "Service is not configured; check the configuration file and restart"
        )
    return pipeline
