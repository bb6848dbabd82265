"""Core data models for the component framework.

Canonical definitions for the three component kinds (tools, resources,
prompts) plus the result and statistics types produced by a load pass.
Every loaded component is converted into one of these models before it
reaches the registry.
"""

import inspect
import json
from enum import Enum
from typing import Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ComponentKind(str, Enum):
    """Kind of a user-authored component."""
    TOOL = "tool"
    RESOURCE = "resource"
    PROMPT = "prompt"


class RegistryState(str, Enum):
    """Lifecycle of a registry load pass."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


class TextContent(BaseModel):
    """A single text block in a tool result or prompt message."""
    type: Literal["text"] = "text"
    text: str


class CallToolResult(BaseModel):
    """Result of a tool execution as handed to the protocol runtime."""
    model_config = ConfigDict(populate_by_name=True)

    content: list[dict[str, Any]] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str) -> "CallToolResult":
        return cls(content=[TextContent(text=text).model_dump()])

    @classmethod
    def error(cls, message: str) -> "CallToolResult":
        return cls(content=[TextContent(text=message).model_dump()], is_error=True)


class ToolDefinition(BaseModel):
    """
    Canonical tool definition.

    ``input_schema`` is either a JSON Schema object, a raw field-shape
    mapping (``{"field": {"type": ..., "description": ...}}``) or a
    pydantic model class.
    """
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Unique tool name")
    description: str = Field(default="")
    input_schema: Optional[Any] = Field(default=None, alias="inputSchema")
    output_schema: Optional[Any] = Field(default=None, alias="outputSchema")
    annotations: Optional[dict[str, Any]] = None
    execute: Callable[..., Any]

    @field_validator("description", mode="before")
    @classmethod
    def empty_description(cls, value: Any) -> Any:
        return "" if value is None else value

    async def call(self, arguments: Optional[dict[str, Any]] = None) -> CallToolResult:
        """
        Run the tool and coerce whatever it returns into a CallToolResult.

        A handler exception becomes an ``isError`` result, whichever way
        the tool was exported.
        """
        try:
            result = self.execute(arguments or {})
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            return CallToolResult.error(str(e))
        return coerce_tool_result(result)


class ResourceDefinition(BaseModel):
    """Canonical resource definition, keyed by ``uri``."""
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    uri: str = Field(..., min_length=1)
    name: str
    description: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    content: Union[str, Callable[[], Any]]

    async def read(self) -> str:
        """Return the resource content, invoking the producer if there is one."""
        if isinstance(self.content, str):
            return self.content
        value = self.content()
        if inspect.isawaitable(value):
            value = await value
        return value if isinstance(value, str) else str(value)


class PromptArgument(BaseModel):
    """A named argument accepted by a prompt."""
    name: str
    description: Optional[str] = None
    required: bool = False


class PromptMessage(BaseModel):
    """A single role/content message produced by a prompt."""
    role: Literal["user", "assistant"]
    content: dict[str, Any]


class PromptDefinition(BaseModel):
    """Canonical prompt definition, keyed by ``name``."""
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    arguments: list[PromptArgument] = Field(default_factory=list)
    get_messages: Callable[..., Any] = Field(..., alias="getMessages")

    async def render(self, arguments: Optional[dict[str, str]] = None) -> list[PromptMessage]:
        """Produce the prompt messages for the given arguments."""
        missing = [
            a.name for a in self.arguments
            if a.required and a.name not in (arguments or {})
        ]
        if missing:
            raise ValueError(
                f"Prompt '{self.name}' is missing required arguments: {', '.join(missing)}"
            )
        messages = self.get_messages(arguments or {})
        if inspect.isawaitable(messages):
            messages = await messages
        return [PromptMessage.model_validate(m) for m in messages]


Definition = Union[ToolDefinition, ResourceDefinition, PromptDefinition]


class RegistryStats(BaseModel):
    """Component counts, derived from storage on every read."""
    tools: int = 0
    resources: int = 0
    prompts: int = 0
    total: int = 0


class LoadResult(BaseModel):
    """Components of one kind loaded from a directory, plus per-file errors."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: ComponentKind
    components: list[Any] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class LoadAllResult(BaseModel):
    """Outcome of a full load pass across all component kinds."""
    tools: list[ToolDefinition] = Field(default_factory=list)
    resources: list[ResourceDefinition] = Field(default_factory=list)
    prompts: list[PromptDefinition] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def coerce_tool_result(result: Any) -> CallToolResult:
    """
    Normalise a tool handler's return value.

    Accepts a CallToolResult, a mapping carrying a ``content`` list, a
    string, a mapping/object with ``text``, or a list of strings or text
    items. Anything else is JSON-encoded into a single text block.
    """
    if isinstance(result, CallToolResult):
        return result
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        return CallToolResult.model_validate(result)
    if isinstance(result, str):
        return CallToolResult.text(result)
    if isinstance(result, dict) and "text" in result:
        return CallToolResult.text(str(result["text"]))
    if isinstance(result, list):
        if all(isinstance(item, str) for item in result):
            return CallToolResult(content=[TextContent(text=t).model_dump() for t in result])
        if all(isinstance(item, dict) and "text" in item for item in result):
            return CallToolResult(
                content=[TextContent(text=str(item["text"])).model_dump() for item in result]
            )
    return CallToolResult.text(json.dumps(result, default=str))
