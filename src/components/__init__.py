"""Component discovery, compilation, loading and authoring helpers.

Components are plain Python files named ``tool.py``, ``resource.py`` or
``prompt.py`` anywhere below the configured directories. Each exports
its definition as the module-level ``default`` attribute.
"""

from components.compiler import CompiledModule, ModuleCompiler
from components.definitions import (
    Tool,
    chat_prompt,
    dynamic_resource,
    file_resource,
    prompt,
    resource,
    tool,
    with_error_handling,
)
from components.discovery import find_component_files, kind_for_file
from components.loader import ComponentLoader, normalize_export
from components.validators import (
    PROMPT_VALIDATOR,
    RESOURCE_VALIDATOR,
    TOOL_VALIDATOR,
    KindValidator,
    validate_schema_descriptions,
    validate_tool_schema,
    validate_tools,
)

__all__ = [
    "CompiledModule",
    "ModuleCompiler",
    "Tool",
    "chat_prompt",
    "dynamic_resource",
    "file_resource",
    "prompt",
    "resource",
    "tool",
    "with_error_handling",
    "find_component_files",
    "kind_for_file",
    "ComponentLoader",
    "normalize_export",
    "KindValidator",
    "TOOL_VALIDATOR",
    "RESOURCE_VALIDATOR",
    "PROMPT_VALIDATOR",
    "validate_schema_descriptions",
    "validate_tool_schema",
    "validate_tools",
]
