"""JSON Schema utilities for tool input schemas."""

from typing import Any, Mapping

from jsonschema import Draft7Validator
from pydantic import BaseModel


TYPE_MAPPING = {
    "string": "string",
    "str": "string",
    "integer": "integer",
    "int": "integer",
    "number": "number",
    "float": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "array",
    "list": "array",
    "object": "object",
    "dict": "object",
}


def is_model_class(value: Any) -> bool:
    """True if ``value`` is a pydantic model class (not an instance)."""
    return isinstance(value, type) and issubclass(value, BaseModel)


def is_json_schema(schema: Mapping[str, Any]) -> bool:
    """
    True for a JSON Schema object, as opposed to a raw field-shape mapping.

    A raw shape may have a field called ``properties``; its value is then
    a single field definition (string ``type`` or ``description``) rather
    than a mapping of property names to subschemas.
    """
    if "properties" in schema:
        properties = schema["properties"]
        return isinstance(properties, Mapping) and not _is_field(properties)
    return schema.get("type") == "object"


def _is_field(value: Mapping[str, Any]) -> bool:
    return isinstance(value.get("type"), str) or isinstance(value.get("description"), str)


def to_json_schema(schema: Any) -> dict[str, Any]:
    """
    Convert any supported input schema into a JSON Schema object.

    Args:
        schema: A JSON Schema object, a raw field-shape mapping or a
            pydantic model class. ``None`` yields an empty object schema.

    Returns:
        JSON Schema dictionary
    """
    if schema is None:
        return {"type": "object", "properties": {}}
    if is_model_class(schema):
        return schema.model_json_schema()
    if not isinstance(schema, Mapping):
        raise TypeError(f"Unsupported schema type: {type(schema).__name__}")
    if is_json_schema(schema):
        return dict(schema)
    return shape_to_json_schema(schema)


def shape_to_json_schema(shape: Mapping[str, Any]) -> dict[str, Any]:
    """
    Create a JSON Schema from a raw field-shape mapping.

    Each field maps to a dict with ``type``, ``description`` and optional
    ``required`` (default True), ``enum``, ``default`` and ``items`` keys.
    A bare string value is taken as the field type.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, field in shape.items():
        if isinstance(field, str):
            field = {"type": field}
        field = dict(field)
        is_required = field.pop("required", True) and "default" not in field
        field_type = field.get("type", "string")
        if isinstance(field_type, str):
            field["type"] = TYPE_MAPPING.get(field_type, field_type)
        properties[name] = field
        if is_required:
            required.append(name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def validate_schema(data: Any, schema: Any) -> tuple[bool, list[str]]:
    """
    Validate data against a tool input schema.

    Args:
        data: The data to validate
        schema: Any schema accepted by ``to_json_schema``

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    if not schema:
        return True, []

    validator = Draft7Validator(to_json_schema(schema))
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])

    if not errors:
        return True, []

    error_messages = [
        f"{'.'.join(str(p) for p in e.path)}: {e.message}" if e.path else e.message
        for e in errors
    ]

    return False, error_messages
