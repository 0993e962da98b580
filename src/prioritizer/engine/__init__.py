"""Email processing engines.

This package provides:
- Result merging and stable priority ranking
- The fetch-normalize-prioritize pipeline used by the web app and CLI
"""

from prioritizer.engine.pipeline import PrioritizationPipeline
from prioritizer.engine.ranking import (
    build_origin_url,
    count_by_priority,
    merge_results,
    normalize_priority,
    prioritize,
    rank_emails,
)

__all__ = [
    # Pipeline
    "PrioritizationPipeline",
    # Ranking
    "build_origin_url",
    "count_by_priority",
    "merge_results",
    "normalize_priority",
    "prioritize",
    "rank_emails",
]
