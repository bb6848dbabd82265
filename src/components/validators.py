"""Structural validation of component definitions.

Two layers live here: per-kind predicates used while loading (a file
whose export fails the predicate is skipped, not reported), and
aggregate validation of a set of tools, which collects every problem
before raising once.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, get_args

from pydantic import BaseModel

from shared.errors import ToolValidationError
from shared.models import (
    ComponentKind,
    PromptDefinition,
    ResourceDefinition,
    ToolDefinition,
)
from shared.schema import is_json_schema, is_model_class


def _is_schema_object(value: Any) -> bool:
    return isinstance(value, Mapping) or is_model_class(value)


def is_tool(shape: Mapping[str, Any]) -> bool:
    """Shape check for a canonical tool mapping."""
    description = shape.get("description")
    input_schema = shape.get("input_schema")
    return (
        isinstance(shape.get("name"), str)
        and (description is None or isinstance(description, str))
        and (input_schema is None or _is_schema_object(input_schema))
        and callable(shape.get("execute"))
    )


def is_resource(shape: Mapping[str, Any]) -> bool:
    """Shape check for a canonical resource mapping."""
    content = shape.get("content")
    return (
        isinstance(shape.get("uri"), str)
        and isinstance(shape.get("name"), str)
        and (isinstance(content, str) or callable(content))
    )


def is_prompt(shape: Mapping[str, Any]) -> bool:
    """Shape check for a canonical prompt mapping."""
    return isinstance(shape.get("name"), str) and callable(shape.get("get_messages"))


@dataclass(frozen=True)
class KindValidator:
    """Predicate plus canonical model for one component kind."""
    kind: ComponentKind
    predicate: Callable[[Mapping[str, Any]], bool]
    model: type[BaseModel]

    def accepts(self, shape: Mapping[str, Any]) -> bool:
        return self.predicate(shape)

    def build(self, shape: Mapping[str, Any]) -> BaseModel:
        return self.model.model_validate(dict(shape))


TOOL_VALIDATOR = KindValidator(ComponentKind.TOOL, is_tool, ToolDefinition)
RESOURCE_VALIDATOR = KindValidator(ComponentKind.RESOURCE, is_resource, ResourceDefinition)
PROMPT_VALIDATOR = KindValidator(ComponentKind.PROMPT, is_prompt, PromptDefinition)


def _nested_model(annotation: Any) -> Optional[type[BaseModel]]:
    if is_model_class(annotation):
        return annotation
    for arg in get_args(annotation):
        found = _nested_model(arg)
        if found is not None:
            return found
    return None


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def validate_schema_descriptions(schema: Any, path: str = "") -> list[str]:
    """
    Find schema fields without a human-readable description.

    Accepts a JSON Schema object, a raw field-shape mapping or a pydantic
    model class, and recurses into nested objects and models.

    Returns:
        One message per undocumented field; empty when all are documented.
    """
    return _walk_schema(schema, path, frozenset())


def _walk_schema(schema: Any, path: str, seen: frozenset) -> list[str]:
    errors: list[str] = []

    if is_model_class(schema):
        if schema in seen:
            return errors
        seen = seen | {schema}
        for key, info in schema.model_fields.items():
            field_path = _join(path, key)
            if not info.description:
                errors.append(f"Field '{field_path}' is missing description")
            nested = _nested_model(info.annotation)
            if nested is not None:
                errors.extend(_walk_schema(nested, field_path, seen))
        return errors

    if not isinstance(schema, Mapping):
        return errors

    properties = schema.get("properties", {}) if is_json_schema(schema) else schema
    for key, field in properties.items():
        field_path = _join(path, key)
        if is_model_class(field):
            errors.extend(_walk_schema(field, field_path, seen))
            continue
        if not isinstance(field, Mapping) or not field.get("description"):
            errors.append(f"Field '{field_path}' is missing description")
        if isinstance(field, Mapping):
            if is_json_schema(field):
                errors.extend(_walk_schema(field, field_path, seen))
            items = field.get("items")
            if isinstance(items, Mapping) and is_json_schema(items):
                errors.extend(_walk_schema(items, f"{field_path}[]", seen))

    return errors


def validate_tool_schema(schema: Any, tool_name: str) -> None:
    """Raise ToolValidationError if any field of a tool's schema is undocumented."""
    errors = validate_schema_descriptions(schema)
    if errors:
        raise ToolValidationError(f"Tool '{tool_name}': {e}" for e in errors)


def _field(tool: Any, *names: str) -> Any:
    for name in names:
        value = tool.get(name) if isinstance(tool, Mapping) else getattr(tool, name, None)
        if value is not None:
            return value
    return None


def validate_tools(tools: Iterable[Any], require_descriptions: bool = False) -> None:
    """
    Validate a set of tools, reporting every problem at once.

    Args:
        tools: Tool definitions, mappings or objects with tool attributes
        require_descriptions: Also report undocumented schema fields

    Raises:
        ToolValidationError: With one message per problem found
    """
    all_errors: list[str] = []

    for tool in tools:
        name = _field(tool, "name")
        if not name or not isinstance(name, str):
            all_errors.append("Tool is missing or has invalid name property")
            continue

        if not callable(_field(tool, "execute")):
            all_errors.append(f"Tool '{name}' is missing execute function")
            continue

        input_schema = _field(tool, "input_schema", "inputSchema")
        if input_schema is not None and not _is_schema_object(input_schema):
            all_errors.append(f"Tool '{name}' has invalid inputSchema")
            continue

        if require_descriptions and input_schema is not None:
            all_errors.extend(
                f"Tool '{name}': {e}" for e in validate_schema_descriptions(input_schema)
            )

    if all_errors:
        raise ToolValidationError(all_errors)
