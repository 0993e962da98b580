"""Pytest fixtures and configuration for inbox prioritizer tests.

Provides common fixtures for configuration and environment isolation.
"""

import os
from pathlib import Path
from typing import Any, Generator

import pytest

from prioritizer.config import reset_config
from prioritizer.config_schema import AppConfig


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials and config paths out of the tests."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("PRIORITIZER_CONFIG_PATH", raising=False)


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a minimal valid config.yaml content."""
    return """
schema_version: 1

gmail:
  default_max_results: 10
  timeout_seconds: 15

analysis:
  api_key: "test-api-key"
  model: "claude-haiku-4-5-20251001"
  max_batch_size: 100

logging:
  level: "INFO"
  json_output: false
"""


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Return a minimal valid config as a dictionary."""
    return {
        "schema_version": 1,
        "gmail": {"default_max_results": 10},
        "analysis": {"api_key": "test-api-key"},
    }


@pytest.fixture
def sample_config(sample_config_dict: dict[str, Any]) -> AppConfig:
    """Return a minimal valid AppConfig instance."""
    return AppConfig(**sample_config_dict)


@pytest.fixture
def config_file(temp_config_dir: Path, sample_config_yaml: str) -> Path:
    """Create a temporary config file with valid content."""
    config_path = temp_config_dir / "config.yaml"
    config_path.write_text(sample_config_yaml)
    return config_path


@pytest.fixture
def set_config_env(config_file: Path) -> Generator[None, None, None]:
    """Set the PRIORITIZER_CONFIG_PATH environment variable."""
    old_value = os.environ.get("PRIORITIZER_CONFIG_PATH")
    os.environ["PRIORITIZER_CONFIG_PATH"] = str(config_file)
    yield
    if old_value is None:
        del os.environ["PRIORITIZER_CONFIG_PATH"]
    else:
        os.environ["PRIORITIZER_CONFIG_PATH"] = old_value
