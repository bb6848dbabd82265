"""Wiring between the component registry and a protocol runtime.

The registry stays ignorant of the protocol; this module reads its
listings and hands each component to a runtime that knows how to serve
it. Any object providing the three ``register_*`` methods qualifies.
"""

from typing import Any, Awaitable, Callable, Optional, Protocol

from registry import ComponentRegistry
from shared.errors import RegistryItemLoadError
from shared.logging import get_logger
from shared.models import (
    CallToolResult,
    PromptDefinition,
    PromptMessage,
    ResourceDefinition,
    ToolDefinition,
)
from shared.schema import to_json_schema

logger = get_logger(__name__)


class ProtocolRuntime(Protocol):
    """What a protocol server must expose to receive components."""

    def register_tool(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        handler: Callable[[dict[str, Any]], Awaitable[CallToolResult]],
    ) -> None:
        ...

    def register_resource(
        self,
        uri: str,
        name: str,
        description: Optional[str],
        mime_type: Optional[str],
        reader: Callable[[], Awaitable[str]],
    ) -> None:
        ...

    def register_prompt(
        self,
        name: str,
        description: Optional[str],
        arguments: list[dict[str, Any]],
        handler: Callable[[dict[str, str]], Awaitable[list[PromptMessage]]],
    ) -> None:
        ...


def describe_tool(tool: ToolDefinition) -> dict[str, Any]:
    """JSON-ready listing entry for a tool."""
    entry: dict[str, Any] = {
        "name": tool.name,
        "description": tool.description,
        "inputSchema": to_json_schema(tool.input_schema),
    }
    if tool.output_schema is not None:
        entry["outputSchema"] = to_json_schema(tool.output_schema)
    if tool.annotations:
        entry["annotations"] = tool.annotations
    return entry


def describe_resource(resource: ResourceDefinition) -> dict[str, Any]:
    """JSON-ready listing entry for a resource."""
    entry: dict[str, Any] = {"uri": resource.uri, "name": resource.name}
    if resource.description:
        entry["description"] = resource.description
    mime_type = resource.mime_type or resource.content_type
    if mime_type:
        entry["mimeType"] = mime_type
    return entry


def describe_prompt(prompt: PromptDefinition) -> dict[str, Any]:
    """JSON-ready listing entry for a prompt."""
    return {
        "name": prompt.name,
        "description": prompt.description,
        "arguments": [a.model_dump(exclude_none=True) for a in prompt.arguments],
    }


def register_components(registry: ComponentRegistry, runtime: ProtocolRuntime) -> int:
    """
    Register every loaded component with ``runtime``.

    Args:
        registry: A registry whose load pass has completed
        runtime: Protocol server receiving the components

    Returns:
        Number of components registered

    Raises:
        RegistryItemLoadError: If the runtime rejects a component
    """
    count = 0

    for tool in registry.get_all_tools():
        try:
            runtime.register_tool(
                tool.name,
                tool.description,
                to_json_schema(tool.input_schema),
                tool.call,
            )
        except Exception as e:
            raise RegistryItemLoadError("tool", tool.name, str(e)) from e
        count += 1

    for resource in registry.get_all_resources():
        try:
            runtime.register_resource(
                resource.uri,
                resource.name,
                resource.description,
                resource.mime_type or resource.content_type,
                resource.read,
            )
        except Exception as e:
            raise RegistryItemLoadError("resource", resource.uri, str(e)) from e
        count += 1

    for prompt in registry.get_all_prompts():
        try:
            runtime.register_prompt(
                prompt.name,
                prompt.description,
                [a.model_dump(exclude_none=True) for a in prompt.arguments],
                prompt.render,
            )
        except Exception as e:
            raise RegistryItemLoadError("prompt", prompt.name, str(e)) from e
        count += 1

    logger.info("Components registered with runtime", count=count)
    return count
