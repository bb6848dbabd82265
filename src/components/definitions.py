"""Helpers for authoring components.

Component files export their definition as the module-level ``default``
attribute. These helpers build canonical definitions and work either as
plain calls or as decorators::

    @tool("greet", description="Greet someone", input_schema=GreetInput)
    async def default(arguments):
        return f"Hello, {arguments['name']}!"
"""

import functools
import inspect
import mimetypes
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from shared.models import (
    CallToolResult,
    PromptArgument,
    PromptDefinition,
    PromptMessage,
    ResourceDefinition,
    TextContent,
    ToolDefinition,
    coerce_tool_result,
)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def with_error_handling(
    fn: Callable[..., Any],
) -> Callable[..., Awaitable[CallToolResult]]:
    """
    Wrap a tool handler so it always resolves to a CallToolResult.

    Return values are normalised with ``coerce_tool_result``; exceptions
    become error results instead of propagating.
    """
    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> CallToolResult:
        try:
            result = fn(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return coerce_tool_result(result)
        except Exception as e:
            return CallToolResult.error(str(e))

    return wrapper


def tool(
    name: str,
    description: str = "",
    *,
    input_schema: Any = None,
    output_schema: Any = None,
    annotations: Optional[dict[str, Any]] = None,
    execute: Optional[Callable[..., Any]] = None,
) -> Any:
    """
    Define a tool.

    Returns a ToolDefinition when ``execute`` is given, otherwise a
    decorator that turns the decorated handler into one.
    """
    def build(handler: Callable[..., Any]) -> ToolDefinition:
        return ToolDefinition(
            name=name,
            description=description or inspect.getdoc(handler) or "",
            input_schema=input_schema,
            output_schema=output_schema,
            annotations=annotations,
            execute=with_error_handling(handler),
        )

    if execute is not None:
        return build(execute)
    return build


class Tool:
    """
    Class-based tool. Subclasses set the class attributes and implement
    ``execute``; export an instance as ``default``.
    """
    name: str = ""
    description: str = ""
    input_schema: Any = None
    annotations: Optional[dict[str, Any]] = None

    def execute(self, arguments: dict[str, Any]) -> Any:
        raise NotImplementedError

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name or type(self).__name__,
            description=self.description or inspect.cleandoc(type(self).__doc__ or ""),
            input_schema=self.input_schema,
            annotations=self.annotations,
            execute=with_error_handling(self.execute),
        )


def resource(
    uri: str,
    name: str,
    *,
    description: Optional[str] = None,
    mime_type: Optional[str] = None,
    content: Union[str, Callable[[], Any], None] = None,
) -> Any:
    """
    Define a resource.

    ``content`` may be a string or a zero-argument producer (sync or
    async). Without ``content`` this returns a decorator for the producer.
    """
    def build(value: Union[str, Callable[[], Any]]) -> ResourceDefinition:
        return ResourceDefinition(
            uri=uri,
            name=name,
            description=description,
            mime_type=mime_type,
            content_type=mime_type or DEFAULT_CONTENT_TYPE,
            content=value,
        )

    if content is not None:
        return build(content)
    return build


def file_resource(
    path: Union[str, Path],
    *,
    uri: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    content_type: Optional[str] = None,
) -> ResourceDefinition:
    """
    Define a resource backed by a file, read once at creation time.

    Relative paths resolve against the current working directory.
    """
    file_path = Path(path)
    if not file_path.is_absolute():
        file_path = Path.cwd() / file_path
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")

    guessed, _ = mimetypes.guess_type(file_path.name)
    return ResourceDefinition(
        uri=uri or file_path.as_uri(),
        name=name or file_path.name,
        description=description,
        mime_type=guessed,
        content_type=content_type or guessed or DEFAULT_CONTENT_TYPE,
        content=file_path.read_text(encoding="utf-8"),
    )


def dynamic_resource(
    uri: str,
    name: str,
    generator: Callable[[], Any],
    *,
    description: Optional[str] = None,
    content_type: Optional[str] = None,
) -> ResourceDefinition:
    """Define a resource whose content is produced on every read."""
    return ResourceDefinition(
        uri=uri,
        name=name,
        description=description,
        content_type=content_type,
        content=generator,
    )


def prompt(
    name: str,
    description: Optional[str] = None,
    *,
    arguments: Optional[list[Union[PromptArgument, dict[str, Any]]]] = None,
    get_messages: Optional[Callable[..., Any]] = None,
) -> Any:
    """
    Define a prompt.

    ``get_messages`` receives the argument mapping and returns (or
    resolves to) a list of role/content messages. Without it this
    returns a decorator.
    """
    def build(handler: Callable[..., Any]) -> PromptDefinition:
        return PromptDefinition(
            name=name,
            description=description or inspect.getdoc(handler),
            arguments=[PromptArgument.model_validate(a) for a in arguments or []],
            get_messages=handler,
        )

    if get_messages is not None:
        return build(get_messages)
    return build


class _Arguments(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def chat_prompt(
    name: str,
    messages: list[dict[str, str]],
    *,
    description: Optional[str] = None,
    arguments: Optional[list[Union[PromptArgument, dict[str, Any]]]] = None,
) -> PromptDefinition:
    """
    Define a prompt from fixed ``{"role", "content"}`` chat messages.

    Message text is rendered with ``str.format_map`` over the prompt
    arguments, so ``{topic}`` placeholders are filled in.
    """
    def get_messages(args: dict[str, str]) -> list[PromptMessage]:
        return [
            PromptMessage(
                role=m["role"],
                content=TextContent(text=m["content"].format_map(_Arguments(args))).model_dump(),
            )
            for m in messages
        ]

    return prompt(name, description or name, arguments=arguments, get_messages=get_messages)
