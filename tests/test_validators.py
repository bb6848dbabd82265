"""Tests for component validation."""

from typing import Optional

import pytest
from pydantic import BaseModel, Field

from components.validators import (
    PROMPT_VALIDATOR,
    RESOURCE_VALIDATOR,
    TOOL_VALIDATOR,
    is_prompt,
    is_resource,
    is_tool,
    validate_schema_descriptions,
    validate_tool_schema,
    validate_tools,
)
from shared.errors import ToolValidationError
from shared.models import ToolDefinition


def _execute(arguments):
    return "ok"


class Address(BaseModel):
    street: str = Field(..., description="Street and number")
    city: str


class Person(BaseModel):
    name: str = Field(..., description="Full name")
    address: Optional[Address] = Field(default=None, description="Home address")


class TestPredicates:
    """Tests for per-kind shape predicates."""

    def test_is_tool(self):
        """Test the tool predicate."""
        assert is_tool({"name": "t", "execute": _execute})
        assert is_tool({"name": "t", "execute": _execute, "input_schema": {"type": "object"}})
        assert is_tool({"name": "t", "execute": _execute, "input_schema": Person})
        assert not is_tool({"name": "t"})
        assert not is_tool({"name": 1, "execute": _execute})
        assert not is_tool({"name": "t", "execute": _execute, "input_schema": "object"})

    def test_is_resource(self):
        """Test the resource predicate."""
        assert is_resource({"uri": "a://b", "name": "n", "content": "text"})
        assert is_resource({"uri": "a://b", "name": "n", "content": lambda: "text"})
        assert not is_resource({"uri": "a://b", "name": "n"})
        assert not is_resource({"name": "n", "content": "text"})

    def test_is_prompt(self):
        """Test the prompt predicate."""
        assert is_prompt({"name": "p", "get_messages": lambda args: []})
        assert not is_prompt({"name": "p"})

    def test_kind_validator_builds_models(self):
        """Test that kind validators build canonical models."""
        tool = TOOL_VALIDATOR.build({"name": "t", "execute": _execute})
        resource = RESOURCE_VALIDATOR.build({"uri": "a://b", "name": "n", "content": "x"})
        prompt = PROMPT_VALIDATOR.build({"name": "p", "get_messages": lambda args: []})

        assert isinstance(tool, ToolDefinition)
        assert resource.uri == "a://b"
        assert prompt.name == "p"


class TestSchemaDescriptions:
    """Tests for undocumented-field detection."""

    def test_json_schema(self):
        """Test a JSON Schema object with one undocumented field."""
        schema = {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name"},
                "age": {"type": "integer"},
            },
        }
        assert validate_schema_descriptions(schema) == ["Field 'age' is missing description"]

    def test_raw_shape(self):
        """Test a raw field-shape mapping."""
        shape = {"query": {"type": "string"}, "limit": {"type": "integer", "description": "Max"}}
        assert validate_schema_descriptions(shape) == ["Field 'query' is missing description"]

    def test_raw_shape_with_properties_field(self):
        """Test that a raw shape with a field called properties is walked as a shape."""
        shape = {
            "properties": {"type": "string", "description": "Extra properties"},
            "name": {"type": "string"},
        }
        assert validate_schema_descriptions(shape) == ["Field 'name' is missing description"]

    def test_nested_json_schema(self):
        """Test that nested objects and array items are walked."""
        schema = {
            "type": "object",
            "properties": {
                "filter": {
                    "type": "object",
                    "description": "Filter",
                    "properties": {"field": {"type": "string"}},
                },
                "tags": {
                    "type": "array",
                    "description": "Tags",
                    "items": {"type": "object", "properties": {"label": {"type": "string"}}},
                },
            },
        }
        assert validate_schema_descriptions(schema) == [
            "Field 'filter.field' is missing description",
            "Field 'tags[].label' is missing description",
        ]

    def test_model_class(self):
        """Test that pydantic model classes are walked, including nested models."""
        assert validate_schema_descriptions(Person) == [
            "Field 'address.city' is missing description",
        ]

    def test_fully_documented(self):
        """Test that a documented schema yields no messages."""
        schema = {"type": "object", "properties": {"a": {"type": "string", "description": "A"}}}
        assert validate_schema_descriptions(schema) == []

    def test_validate_tool_schema_raises(self):
        """Test that validate_tool_schema names the tool."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_tool_schema({"q": {"type": "string"}}, "search")

        assert exc_info.value.messages == ["Tool 'search': Field 'q' is missing description"]


class TestValidateTools:
    """Tests for aggregate tool validation."""

    def test_valid_tools(self):
        """Test that valid tools pass."""
        validate_tools([
            ToolDefinition(name="a", execute=_execute),
            {"name": "b", "execute": _execute, "inputSchema": {"type": "object"}},
        ])

    def test_collects_every_problem(self):
        """Test that validation fails slow and reports each problem."""
        tools = [
            {"execute": _execute},
            {"name": "no_exec"},
            {"name": "bad_schema", "execute": _execute, "input_schema": 5},
        ]

        with pytest.raises(ToolValidationError) as exc_info:
            validate_tools(tools)

        assert exc_info.value.messages == [
            "Tool is missing or has invalid name property",
            "Tool 'no_exec' is missing execute function",
            "Tool 'bad_schema' has invalid inputSchema",
        ]
        assert str(exc_info.value).startswith("Tool validation failed:")

    def test_missing_descriptions_across_tools(self):
        """Test that undocumented fields in two tools give two messages."""
        tools = [
            ToolDefinition(name="one", execute=_execute, input_schema={"x": {"type": "string"}}),
            ToolDefinition(name="two", execute=_execute, input_schema={"y": {"type": "string"}}),
        ]

        with pytest.raises(ToolValidationError) as exc_info:
            validate_tools(tools, require_descriptions=True)

        assert exc_info.value.messages == [
            "Tool 'one': Field 'x' is missing description",
            "Tool 'two': Field 'y' is missing description",
        ]

    def test_descriptions_ignored_by_default(self):
        """Test that undocumented fields are not errors unless required."""
        validate_tools([
            ToolDefinition(name="one", execute=_execute, input_schema={"x": {"type": "string"}}),
        ])
