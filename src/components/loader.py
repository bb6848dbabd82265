"""Dynamic import and normalization of component files.

A component file is compiled if needed, imported, and its primary
export (the module-level ``default`` attribute) is converted into the
canonical definition for its kind. Historical export shapes are handled
by a closed list of adapters; anything else is treated as a shape
mismatch and skipped.
"""

import dataclasses
import hashlib
import importlib.util
import inspect
import sys
from collections.abc import Mapping
from pathlib import Path
from types import ModuleType
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from components.compiler import ModuleCompiler
from components.discovery import COMPILED_SUFFIX, find_component_files
from components.validators import (
    PROMPT_VALIDATOR,
    RESOURCE_VALIDATOR,
    TOOL_VALIDATOR,
    KindValidator,
)
from shared.config import AutoloadOptions
from shared.errors import ComponentImportError, ComponentLoadError
from shared.logging import get_logger
from shared.models import ComponentKind, LoadResult

logger = get_logger(__name__)

EXPORT_NAME = "default"

# camelCase spellings accepted for canonical snake_case fields
FIELD_ALIASES = {
    "inputSchema": "input_schema",
    "outputSchema": "output_schema",
    "getMessages": "get_messages",
    "mimeType": "mime_type",
    "contentType": "content_type",
}

VALIDATORS: dict[ComponentKind, KindValidator] = {
    ComponentKind.TOOL: TOOL_VALIDATOR,
    ComponentKind.RESOURCE: RESOURCE_VALIDATOR,
    ComponentKind.PROMPT: PROMPT_VALIDATOR,
}


# ---------------------------------------------------------------------------
# Export adapters
# ---------------------------------------------------------------------------

def unwrap_default(value: Any) -> Any:
    """Unwrap one level of a nested ``default`` export."""
    if isinstance(value, Mapping) and EXPORT_NAME in value:
        return value[EXPORT_NAME]
    if isinstance(value, ModuleType) and hasattr(value, EXPORT_NAME):
        return getattr(value, EXPORT_NAME)
    return value


def _definition_factory(value: Any):
    for attr in ("to_definition", "toDefinition"):
        method = getattr(value, attr, None)
        if callable(method):
            return method
    return None


def as_mapping(value: Any) -> Optional[dict[str, Any]]:
    """Shallow field mapping of a mapping, pydantic model or dataclass."""
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, BaseModel):
        return {name: getattr(value, name) for name in type(value).model_fields}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return None


def canonicalize_fields(shape: dict[str, Any]) -> dict[str, Any]:
    """Rename camelCase aliases and legacy field names to canonical ones."""
    result: dict[str, Any] = {}
    for key, value in shape.items():
        canonical = FIELD_ALIASES.get(key, key)
        # An explicit snake_case field wins over its alias
        if canonical in result and canonical != key:
            continue
        result[canonical] = value

    if "parameters" in result:
        parameters = result.pop("parameters")
        if result.get("input_schema") is None:
            result["input_schema"] = parameters

    if "id" in result and "name" not in result:
        result["name"] = result.pop("id")

    return result


async def normalize_export(exported: Any) -> Optional[dict[str, Any]]:
    """
    Convert an exported value into a canonical field mapping.

    Returns None when the value matches none of the known export shapes.
    """
    exported = unwrap_default(exported)
    if exported is None:
        return None

    factory = _definition_factory(exported)
    if factory is not None:
        exported = factory()
        if inspect.isawaitable(exported):
            exported = await exported

    shape = as_mapping(exported)
    if shape is None:
        return None
    return canonicalize_fields(shape)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class ComponentLoader:
    """
    Imports component files and converts their exports to definitions.

    ``.py`` files go through the compiler; ``.pyc`` files are imported
    directly from where they are.
    """

    def __init__(self, compiler: Optional[ModuleCompiler] = None) -> None:
        self.compiler = compiler or ModuleCompiler()

    async def load(
        self,
        file_path: Union[str, Path],
        validator: KindValidator,
    ) -> Optional[Any]:
        """
        Load one component file.

        Args:
            file_path: Path to the component file
            validator: Predicate and canonical model for the requested kind

        Returns:
            The canonical definition, or None if the file does not export
            a component of the requested kind

        Raises:
            ComponentLoadError: If compiling or importing the file fails
        """
        path = Path(file_path).resolve()
        module = await self._import(path)

        if not hasattr(module, EXPORT_NAME):
            return None

        try:
            shape = await normalize_export(getattr(module, EXPORT_NAME))
        except Exception as e:
            raise ComponentLoadError(path, f"Export normalization failed: {e}") from e

        if shape is None or not validator.accepts(shape):
            return None

        try:
            return validator.build(shape)
        except ValidationError as e:
            raise ComponentLoadError(path, f"Invalid {validator.kind.value} definition: {e}") from e

    async def _import(self, path: Path) -> ModuleType:
        if path.suffix == COMPILED_SUFFIX:
            return self._import_compiled_file(path)

        # CompileError propagates unchanged
        compiled = await self.compiler.compile(path)
        try:
            return self.compiler.import_module(compiled)
        except Exception as e:
            raise ComponentImportError(path, f"Import failed: {e!r}") from e

    def _import_compiled_file(self, path: Path) -> ModuleType:
        digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:10]
        module_name = f"_mcp_component_{path.stem}_{digest}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ComponentImportError(path, "Cannot create module spec")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(module_name, None)
            raise ComponentImportError(path, f"Import failed: {e!r}") from e
        return module

    async def load_directory(
        self,
        options: AutoloadOptions,
        kind: ComponentKind,
    ) -> LoadResult:
        """
        Load every component of one kind below ``options.directory``.

        Per-file failures are collected as error strings; they never stop
        the remaining files from loading.
        """
        result = LoadResult(kind=kind)
        if not options.enabled or not options.directory:
            return result

        directory = Path(options.directory)
        if not directory.exists():
            logger.warning(
                "Component directory does not exist, skipping",
                kind=kind.value,
                directory=directory,
            )
            return result

        try:
            files = find_component_files(directory, options.pattern)
        except OSError as e:
            message = f"Failed to scan directory {directory}: {e}"
            logger.warning(message)
            result.errors.append(message)
            return result

        validator = VALIDATORS[kind]
        for file in files:
            try:
                component = await self.load(file, validator)
            except Exception as e:
                message = f"Failed to load component from {file}: {e}"
                logger.warning("Component load failed", kind=kind.value, file=file, error=str(e))
                result.errors.append(message)
                continue
            if component is not None:
                result.components.append(component)
                logger.debug("Component loaded", kind=kind.value, file=file)

        return result
