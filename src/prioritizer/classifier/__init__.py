"""Email priority classification components.

This package provides:
- Prompt builder for batch priority classification
- Response parser for the model's free-text JSON reply
- Claude analyzer that ties the two together in one API call
"""

from prioritizer.classifier.analyzer import EmailAnalyzer
from prioritizer.classifier.prompts import (
    build_classification_prompt,
    format_email_for_prompt,
    select_batch,
)
from prioritizer.classifier.response import (
    Malformed,
    Parsed,
    extract_json_span,
    parse_classification_response,
    parse_or_raise,
)

__all__ = [
    # Analyzer
    "EmailAnalyzer",
    # Prompts
    "build_classification_prompt",
    "format_email_for_prompt",
    "select_batch",
    # Response parsing
    "Malformed",
    "Parsed",
    "extract_json_span",
    "parse_classification_response",
    "parse_or_raise",
]
