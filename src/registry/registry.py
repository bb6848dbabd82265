"""Component Registry.

Runs a load pass (discover, compile, import, normalize, validate, store)
across tools, resources and prompts, and serves the resulting index to
server wiring. A registry is constructed explicitly and handed to its
consumers; there is no process-wide instance.
"""

from typing import Any, Optional

from components.compiler import ModuleCompiler
from components.loader import ComponentLoader
from components.validators import validate_schema_descriptions, validate_tools
from registry.storage import RegistryStorage, key_of, kind_of
from shared.config import AutoloadOptions, AutoloadSettings, RegistrySettings
from shared.errors import RegistryItemNotFoundError, ToolValidationError
from shared.logging import bind_context, get_logger, unbind_context
from shared.models import (
    ComponentKind,
    LoadAllResult,
    PromptDefinition,
    RegistryState,
    RegistryStats,
    ResourceDefinition,
    ToolDefinition,
)
from shared.pagination import DEFAULT_PAGE_SIZE, paginate_with_cursor

logger = get_logger(__name__)


class ComponentRegistry:
    """
    Index of loaded components plus the load pass that fills it.

    State moves Unloaded -> Loading -> Loaded. Loading again while
    Loaded is a no-op that returns the first pass's result; ``clear()``
    returns the registry to Unloaded.
    """

    def __init__(
        self,
        settings: Optional[RegistrySettings] = None,
        storage: Optional[RegistryStorage] = None,
        compiler: Optional[ModuleCompiler] = None,
    ) -> None:
        self.settings = settings or RegistrySettings()
        self.storage = storage or RegistryStorage()
        self.compiler = compiler or ModuleCompiler(
            project_root=self.settings.project_root,
            output_dir=self.settings.compile_dir,
        )
        self.loader = ComponentLoader(self.compiler)
        self._state = RegistryState.UNLOADED
        self._result: Optional[LoadAllResult] = None
        self._passes = 0

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state is RegistryState.LOADED

    async def load_all(self, autoload: AutoloadSettings) -> LoadAllResult:
        """
        Load every enabled component kind into the registry.

        Per-file failures are collected into ``LoadAllResult.errors`` and
        never abort the pass. Tool validation problems become warnings
        unless ``strict_validation`` is set, in which case the pass is
        rolled back and ToolValidationError is raised.

        Args:
            autoload: Directories (and enablement) per component kind

        Returns:
            Everything loaded, with per-file errors and warnings
        """
        if self._state is RegistryState.LOADED:
            logger.warning("Registry already loaded, skipping")
            return self._result
        if self._state is RegistryState.LOADING:
            raise RuntimeError("Registry load already in progress")

        self._state = RegistryState.LOADING
        self._passes += 1
        bind_context(load_pass=self._passes)
        logger.info("Loading components")

        try:
            result = await self._run_pass(autoload)
        except BaseException:
            self.storage.clear()
            self._state = RegistryState.UNLOADED
            raise
        finally:
            unbind_context("load_pass")

        self._result = result
        self._state = RegistryState.LOADED

        stats = self.stats
        logger.info(
            "Components loaded",
            tools=stats.tools,
            resources=stats.resources,
            prompts=stats.prompts,
            errors=len(result.errors),
        )
        if result.errors:
            logger.warning("Loading errors", errors=result.errors)
        return result

    async def _run_pass(self, autoload: AutoloadSettings) -> LoadAllResult:
        self.compiler.reset()
        self.storage.clear()
        result = LoadAllResult()

        passes: list[tuple[ComponentKind, AutoloadOptions, list[Any]]] = [
            (ComponentKind.TOOL, autoload.tools, result.tools),
            (ComponentKind.RESOURCE, autoload.resources, result.resources),
            (ComponentKind.PROMPT, autoload.prompts, result.prompts),
        ]
        for kind, options, components in passes:
            loaded = await self.loader.load_directory(options, kind)
            for definition in loaded.components:
                key = key_of(definition)
                if self.storage.get(kind, key) is not None:
                    result.warnings.append(
                        f"Duplicate {kind.value} '{key}': last definition loaded wins"
                    )
                self.storage.add(definition)
            components.extend(loaded.components)
            result.errors.extend(loaded.errors)

        result.warnings.extend(self._validate_tools(self.get_all_tools()))
        return result

    def _validate_tools(self, tools: list[ToolDefinition]) -> list[str]:
        warnings: list[str] = []
        require = self.settings.require_schema_descriptions
        try:
            validate_tools(tools, require_descriptions=require)
        except ToolValidationError as e:
            if self.settings.strict_validation:
                raise
            logger.warning("Tool validation warnings", errors=e.messages)
            warnings.extend(e.messages)

        if not require:
            for tool in tools:
                if tool.input_schema is None:
                    continue
                for message in validate_schema_descriptions(tool.input_schema):
                    warnings.append(f"Tool '{tool.name}': {message}")
            if warnings:
                logger.info("Undocumented schema fields", count=len(warnings))
        return warnings

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get_all_tools(self) -> list[ToolDefinition]:
        return self.storage.get_all(ComponentKind.TOOL)

    def get_all_resources(self) -> list[ResourceDefinition]:
        return self.storage.get_all(ComponentKind.RESOURCE)

    def get_all_prompts(self) -> list[PromptDefinition]:
        return self.storage.get_all(ComponentKind.PROMPT)

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        return self.storage.get(ComponentKind.TOOL, name)

    def get_resource(self, uri: str) -> Optional[ResourceDefinition]:
        return self.storage.get(ComponentKind.RESOURCE, uri)

    def get_prompt(self, name: str) -> Optional[PromptDefinition]:
        return self.storage.get(ComponentKind.PROMPT, name)

    def require(self, kind: ComponentKind, key: str) -> Any:
        """Like the ``get_*`` methods, but raises RegistryItemNotFoundError."""
        definition = self.storage.get(kind, key)
        if definition is None:
            raise RegistryItemNotFoundError(kind.value, key)
        return definition

    def list_page(
        self,
        kind: ComponentKind,
        cursor: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Any], Optional[str]]:
        """One page of definitions of ``kind`` plus the cursor for the next page."""
        return paginate_with_cursor(self.storage.get_all(kind), cursor, page_size)

    @property
    def stats(self) -> RegistryStats:
        return self.storage.stats

    # ------------------------------------------------------------------
    # Dynamic registration
    # ------------------------------------------------------------------

    def register(self, definition: Any) -> None:
        """Add or replace a definition outside a load pass."""
        self.storage.add(definition)
        logger.info("Component registered", kind=kind_of(definition).value, key=key_of(definition))

    def unregister(self, kind: ComponentKind, key: str) -> bool:
        removed = self.storage.remove(kind, key)
        if removed:
            logger.info("Component unregistered", kind=kind.value, key=key)
        return removed

    def clear(self) -> None:
        """Remove all components and allow another load pass."""
        self.storage.clear()
        self._result = None
        self._state = RegistryState.UNLOADED
        logger.warning("Component registry cleared")

    def close(self) -> None:
        """Release the compiled module tree."""
        self.compiler.cleanup()
