"""Shared models, configuration, logging and errors."""

from shared.models import (
    CallToolResult,
    ComponentKind,
    LoadAllResult,
    LoadResult,
    PromptArgument,
    PromptDefinition,
    PromptMessage,
    RegistryState,
    RegistryStats,
    ResourceDefinition,
    ToolDefinition,
)
from shared.config import AutoloadOptions, AutoloadSettings, Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "CallToolResult",
    "ComponentKind",
    "LoadAllResult",
    "LoadResult",
    "PromptArgument",
    "PromptDefinition",
    "PromptMessage",
    "RegistryState",
    "RegistryStats",
    "ResourceDefinition",
    "ToolDefinition",
    "AutoloadOptions",
    "AutoloadSettings",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
