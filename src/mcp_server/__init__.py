"""MCP Server - HTTP application and protocol runtime wiring.

The server owns no component logic: it serves whatever the component
registry loaded, and can hand the same components to any protocol
runtime through ``register_components``.
"""

from mcp_server.wiring import (
    ProtocolRuntime,
    describe_prompt,
    describe_resource,
    describe_tool,
    register_components,
)

__all__ = [
    "ProtocolRuntime",
    "describe_prompt",
    "describe_resource",
    "describe_tool",
    "register_components",
]
