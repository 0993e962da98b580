"""Configuration loader.

Loads configuration from YAML, validates it against the Pydantic schema and
fills secrets from the environment.

Usage:
    from prioritizer.config import get_config

    # Get current config (singleton)
    config = get_config()
"""

import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from prioritizer.config_schema import CURRENT_SCHEMA_VERSION, AppConfig
from prioritizer.core.errors import ConfigLoadError, ConfigValidationError
from prioritizer.core.logging import get_logger

logger = get_logger(__name__)

# Default config path - can be overridden via environment variable
DEFAULT_CONFIG_PATH = Path("config/config.yaml")

CONFIG_PATH_ENV = "PRIORITIZER_CONFIG_PATH"
API_KEY_ENV = "ANTHROPIC_API_KEY"

_config_lock = threading.Lock()
_current_config: AppConfig | None = None


def _get_config_path() -> tuple[Path, bool]:
    """Get the config file path and whether it was set explicitly."""
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path), True
    return DEFAULT_CONFIG_PATH, False


def _format_validation_errors(error: ValidationError) -> str:
    """Format Pydantic validation errors into actionable messages.

    Args:
        error: Pydantic ValidationError

    Returns:
        Formatted error message with specific field errors
    """
    messages = []
    for err in error.errors():
        # Build field path (e.g., "gmail.timeout_seconds")
        field_path = ".".join(str(loc) for loc in err["loc"])
        msg = err["msg"]
        err_type = err["type"]

        if err_type == "missing":
            messages.append(f"  - Missing required field '{field_path}'")
        elif err_type == "string_type":
            messages.append(f"  - Field '{field_path}' must be a string")
        elif err_type == "int_type":
            messages.append(f"  - Field '{field_path}' must be an integer")
        else:
            messages.append(f"  - Field '{field_path}': {msg}")

    return "\n".join(messages)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Parsed YAML as dictionary

    Raises:
        ConfigLoadError: If file not found or YAML parse error
    """
    if not path.exists():
        raise ConfigLoadError(
            f"Configuration file not found: {path}\n"
            f"Create it or unset {CONFIG_PATH_ENV} to run with defaults."
        )

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            if data is None:
                return {}
            if not isinstance(data, dict):
                raise ConfigLoadError(
                    f"Configuration file must be a YAML mapping, got {type(data).__name__}"
                )
            return data
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML in {path}:\n{e}") from e


def _validate_config(data: dict[str, Any], path: Path | None) -> AppConfig:
    """Validate config data against Pydantic schema.

    Args:
        data: Parsed YAML data
        path: Path to config file (for error messages), None for defaults

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigValidationError: If validation fails
    """
    source = path or "defaults"
    try:
        config = AppConfig(**data)
    except ValidationError as e:
        error_details = _format_validation_errors(e)
        raise ConfigValidationError(
            f"Configuration validation failed for {source}:\n{error_details}"
        ) from e

    if config.schema_version > CURRENT_SCHEMA_VERSION:
        raise ConfigValidationError(
            f"Config schema version {config.schema_version} is newer than "
            f"supported version {CURRENT_SCHEMA_VERSION}. "
            "Please upgrade the prioritizer or downgrade the config."
        )

    return config


def _apply_environment(config: AppConfig) -> AppConfig:
    """Fill secrets that were left out of the YAML from the environment."""
    if not config.analysis.api_key:
        env_key = os.environ.get(API_KEY_ENV)
        if env_key:
            analysis = config.analysis.model_copy(update={"api_key": env_key})
            config = config.model_copy(update={"analysis": analysis})
    return config


def load_config(path: Path | None = None) -> AppConfig:
    """Load and validate configuration.

    A missing file at the default location yields the schema defaults; a
    missing file at an explicitly requested location is an error.

    Args:
        path: Optional path to config file. If not provided, uses
              PRIORITIZER_CONFIG_PATH env var or default.

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigLoadError: If an explicitly requested file cannot be loaded
        ConfigValidationError: If validation fails
    """
    if path is not None:
        config_path, explicit = path, True
    else:
        config_path, explicit = _get_config_path()

    if not explicit and not config_path.exists():
        logger.debug("No configuration file, using defaults", path=str(config_path))
        config = _validate_config({}, None)
    else:
        logger.debug("Loading configuration", path=str(config_path))
        data = _load_yaml(config_path)
        config = _validate_config(data, config_path)

    config = _apply_environment(config)

    logger.info(
        "Configuration loaded successfully",
        path=str(config_path),
        schema_version=config.schema_version,
        analysis_configured=bool(config.analysis.api_key),
    )

    return config


def get_config() -> AppConfig:
    """Get the current configuration singleton.

    On first call, loads configuration from disk. Subsequent calls return
    the cached config.

    Returns:
        Current AppConfig instance

    Raises:
        ConfigLoadError: If file cannot be loaded
        ConfigValidationError: If validation fails
    """
    global _current_config

    with _config_lock:
        if _current_config is None:
            _current_config = load_config()
        return _current_config


def validate_config_file(path: Path | None = None) -> tuple[bool, str]:
    """Validate a config file without loading it into the singleton.

    Args:
        path: Path to config file. If not provided, uses default.

    Returns:
        Tuple of (is_valid, message)
    """
    try:
        config = load_config(path)
    except ConfigLoadError as e:
        return (False, f"Load error: {e}")
    except ConfigValidationError as e:
        return (False, f"Validation error: {e}")

    key_status = "configured" if config.analysis.api_key else "MISSING"
    return (
        True,
        f"Configuration valid (schema version {config.schema_version})\n"
        f"  - classification model: {config.analysis.model}\n"
        f"  - classification API key: {key_status}\n"
        f"  - default fetch size: {config.gmail.default_max_results}\n"
        f"  - analysis batch cap: {config.analysis.max_batch_size}",
    )


def reset_config() -> None:
    """Reset the config singleton. Primarily for testing."""
    global _current_config
    with _config_lock:
        _current_config = None
