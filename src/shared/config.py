"""Configuration management for the component framework.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached for performance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AutoloadOptions(BaseModel):
    """Where to look for components of one kind."""
    enabled: bool = Field(default=True, description="Skip discovery entirely when false")
    directory: str = Field(default="", description="Root directory scanned recursively")
    pattern: Optional[str] = Field(
        default=None,
        description="Optional glob; discovered paths must also match it",
    )


class AutoloadSettings(BaseModel):
    """Autoload configuration for all component kinds."""
    tools: AutoloadOptions = Field(
        default_factory=lambda: AutoloadOptions(directory="src/tools")
    )
    resources: AutoloadOptions = Field(
        default_factory=lambda: AutoloadOptions(directory="src/resources")
    )
    prompts: AutoloadOptions = Field(
        default_factory=lambda: AutoloadOptions(directory="src/prompts")
    )


class RegistrySettings(BaseSettings):
    """Registry and loader behaviour."""
    strict_validation: bool = Field(
        default=False,
        description="Raise on tool validation failures instead of logging warnings",
    )
    require_schema_descriptions: bool = Field(
        default=False,
        description="Treat undocumented schema fields as validation failures",
    )
    project_root: Optional[str] = Field(
        default=None,
        description="Root used to lay out compiled modules (defaults to the cwd)",
    )
    compile_dir: Optional[str] = Field(
        default=None,
        description="Output directory for compiled modules (defaults to a temp dir)",
    )

    model_config = SettingsConfigDict(
        env_prefix="MCP_REGISTRY_",
        env_file=".env",
        extra="ignore"
    )


class ServerSettings(BaseSettings):
    """HTTP server configuration."""
    name: str = Field(default="mcp-autoload")
    version: str = Field(default="0.1.0")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8001)
    page_size: int = Field(default=50, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="MCP_SERVER_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Component settings
    autoload: AutoloadSettings = Field(default_factory=AutoloadSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        return cls(**load_yaml_config(path))


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("MCP_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
