"""Pydantic configuration schema for the inbox prioritizer.

This module defines the configuration schema that mirrors config.yaml structure.
All configuration is validated against these models on startup.

Usage:
    from prioritizer.config_schema import AppConfig

    # Validate a config dict
    config = AppConfig(**yaml_data)
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Current schema version - increment when adding new required fields
CURRENT_SCHEMA_VERSION = 1


class GmailConfig(BaseModel):
    """Gmail REST API and hydration configuration."""

    api_base_url: str = Field(
        default="https://gmail.googleapis.com/gmail/v1",
        description="Gmail API base URL",
    )
    default_max_results: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Messages listed per fetch when the caller gives no maxResults",
    )
    max_results_limit: int = Field(
        default=500,
        ge=1,
        le=500,
        description="Upper bound accepted for a caller-supplied maxResults",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Transport timeout for each Gmail request (seconds)",
    )
    body_max_length: int = Field(
        default=500,
        ge=1,
        le=100_000,
        description="Maximum characters of decoded body kept per message",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Ensure the base URL is an http(s) URL."""
        if not v.startswith(("https://", "http://")):
            raise ValueError("Gmail API base URL must start with http:// or https://")
        return v.rstrip("/")


class AnalysisConfig(BaseModel):
    """Classification (LLM) call configuration."""

    api_key: str | None = Field(
        default=None,
        description="Anthropic API key (falls back to ANTHROPIC_API_KEY)",
        repr=False,
    )
    model: str = Field(
        default="claude-haiku-4-5-20251001",
        description="Model used for priority classification",
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sampling temperature (low for stable labels)",
    )
    max_output_tokens: int = Field(
        default=8192,
        ge=256,
        le=64_000,
        description="Output ceiling, generous to avoid truncated JSON replies",
    )
    max_batch_size: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Maximum emails embedded in one classification prompt",
    )
    prompt_body_length: int = Field(
        default=200,
        ge=1,
        le=10_000,
        description="Maximum body characters per email sent for classification",
    )
    origin_url_base: str = Field(
        default="https://mail.google.com/mail/u/0/#inbox/",
        description="Prefix for the deep link to each source message",
    )


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    json_output: bool = Field(
        default=True,
        description="Emit JSON logs (disable for human-readable console output)",
    )


class WebConfig(BaseModel):
    """HTTP surface configuration."""

    cors_allow_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed by the CORS policy",
    )
    cors_allow_headers: list[str] = Field(
        default=["authorization", "x-client-info", "apikey", "content-type"],
        description="Request headers allowed by the CORS policy",
    )


class AppConfig(BaseModel):
    """Root configuration schema for the inbox prioritizer.

    Every section has defaults, so an empty config.yaml (or none at all)
    produces a working configuration apart from the Anthropic API key.
    """

    schema_version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        ge=1,
        description="Config schema version for migration tracking",
    )

    gmail: GmailConfig = Field(default_factory=GmailConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)
