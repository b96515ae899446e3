"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..utils.logging import ConfigurationError

ENV_PREFIX = "PG_SCHEMA_MCP_"


class ServerConfig(BaseModel):
    """Configuration model for pg-schema-mcp."""

    # Database
    database_url: str | None = Field(
        default=None, description="SQLAlchemy database URL"
    )
    pool_size: int = Field(default=10, description="Pooled connections to keep")
    max_overflow: int = Field(default=20, description="Extra connections allowed")
    pool_timeout: int = Field(
        default=30, description="Seconds to wait for a pooled connection"
    )
    pool_recycle: int = Field(
        default=3600, description="Seconds before a connection is recycled"
    )
    echo_sql: bool = Field(default=False, description="Echo SQL statements")

    # Migrations
    working_dir: str = Field(
        default_factory=lambda: str(Path.cwd()),
        description="Directory the migrations folder lives in",
    )
    migrations_dir: str | None = Field(
        default=None, description="Migration files directory"
    )
    metadata_file: str | None = Field(
        default=None, description="Migration metadata index file"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str | None = Field(default=None, description="Log file path")
    structured_logs: bool = Field(default=True, description="JSON log lines")

    # Server identity
    server_name: str = Field(default="pg-schema-mcp", description="Server name")
    server_version: str = Field(default="0.1.0", description="Server version")

    @property
    def migrations_path(self) -> Path:
        """Resolved migrations directory."""
        if self.migrations_dir:
            return Path(self.migrations_dir).expanduser()
        return Path(self.working_dir).expanduser() / "migrations"

    @property
    def metadata_path(self) -> Path:
        """Resolved metadata index path."""
        if self.metadata_file:
            return Path(self.metadata_file).expanduser()
        return self.migrations_path / "metadata.json"


def find_config_file(custom_path: str | None = None) -> Path | None:
    """Find configuration file in standard locations."""
    if custom_path:
        path = Path(custom_path).expanduser()
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {custom_path}")

    search_paths = [
        Path.cwd() / "pg-schema-mcp.yaml",
        Path.cwd() / "pg-schema-mcp.yml",
        Path.home() / ".config" / "pg-schema-mcp" / "config.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in config file {config_path}: {e}",
            context={"config_path": str(config_path)},
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file {config_path}: {e}",
            context={"config_path": str(config_path)},
        ) from e


def load_env_vars() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    int_keys = {"pool_size", "max_overflow", "pool_timeout", "pool_recycle"}
    bool_keys = {"echo_sql", "structured_logs"}

    for config_key in ServerConfig.model_fields:
        env_var = f"{ENV_PREFIX}{config_key.upper()}"
        if env_var not in os.environ:
            continue

        env_value = os.environ[env_var]
        if config_key in int_keys:
            try:
                config[config_key] = int(env_value)
            except ValueError:
                continue
        elif config_key in bool_keys:
            config[config_key] = env_value.lower() in ("true", "1", "yes", "on")
        else:
            config[config_key] = env_value

    return config


def load_config(
    config_path: str | None = None,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ServerConfig:
    """Load configuration from file and environment variables.

    Precedence order (highest to lowest):
    1. CLI flag overrides
    2. Environment variables
    3. Configuration file (with profile support)
    4. Default values
    """
    config_data: dict[str, Any] = {}

    config_file = find_config_file(config_path)
    if config_file:
        file_data = load_config_file(config_file)
        config_data.update({k: v for k, v in file_data.items() if k != "profiles"})

        profiles = file_data.get("profiles") or {}
        if profile and profile in profiles:
            config_data.update(profiles[profile])

    config_data.update(load_env_vars())

    if cli_overrides:
        config_data.update({k: v for k, v in cli_overrides.items() if v is not None})

    try:
        return ServerConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
