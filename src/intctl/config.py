"""Configuration schema and loading.

The configuration file (intctl_config.yaml) holds the platform API location,
service defaults used when building forms, and an optional default project:

    api:
      base_url: https://api.platform.example
    service:
      default_from_address: noreply@platform.example
    project: abcdefgh1234
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError

# Load environment variables from .env file
load_dotenv()

DEFAULT_CONFIG_FILENAME = "intctl_config.yaml"
DEFAULT_API_URL = "https://api.platform.example"


class ApiConnection(BaseModel):
    """Platform API connection settings."""

    base_url: str = Field(default=DEFAULT_API_URL, description="Platform API base URL")
    token: str | None = Field(
        default=None,
        description="API token (prefer INTCTL_API_TOKEN or ~/.netrc over storing it here)",
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url doesn't have trailing slash."""
        return v.rstrip("/")


class ServiceConfig(BaseModel):
    """Platform service defaults."""

    default_from_address: str | None = Field(
        default=None, description="Default From address for health email integrations"
    )


class CliConfig(BaseModel):
    """Complete intctl configuration."""

    api: ApiConnection = Field(default_factory=ApiConnection)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    project: str | None = Field(default=None, description="Default project ID")

    def get_with_default(self, path: str, default: Any = None) -> Any:
        """Look up a dotted configuration path, e.g. 'service.default_from_address'."""
        current: Any = self
        for part in path.split("."):
            current = getattr(current, part, None)
            if current is None:
                return default
        return current


def load_config(config_path: Path | str | None = None) -> CliConfig:
    """Load configuration from YAML, applying environment overrides.

    Args:
        config_path: Explicit config file. When None, intctl_config.yaml in the
            current directory is used if it exists; otherwise defaults apply.

    Returns:
        CliConfig

    Raises:
        ConfigError: If an explicit config file is missing or the file is invalid
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
    elif Path(DEFAULT_CONFIG_FILENAME).exists():
        config_path = Path(DEFAULT_CONFIG_FILENAME)

    if config_path is not None:
        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

    api_data = dict(data.get("api") or {})
    if env_url := os.getenv("INTCTL_API_URL"):
        api_data["base_url"] = env_url
    if env_token := os.getenv("INTCTL_API_TOKEN"):
        api_data["token"] = env_token
    data["api"] = api_data

    try:
        return CliConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
