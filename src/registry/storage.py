"""In-memory storage for loaded component definitions.

One keyed index per component kind: tools by name, resources by uri,
prompts by name. Adding under an existing key replaces the old value.
"""

import threading
from typing import Any, Iterable, Optional

from shared.logging import get_logger
from shared.models import (
    ComponentKind,
    PromptDefinition,
    RegistryStats,
    ResourceDefinition,
    ToolDefinition,
)

logger = get_logger(__name__)

KEY_FIELDS: dict[ComponentKind, str] = {
    ComponentKind.TOOL: "name",
    ComponentKind.RESOURCE: "uri",
    ComponentKind.PROMPT: "name",
}

MODEL_KINDS: dict[type, ComponentKind] = {
    ToolDefinition: ComponentKind.TOOL,
    ResourceDefinition: ComponentKind.RESOURCE,
    PromptDefinition: ComponentKind.PROMPT,
}


def kind_of(definition: Any) -> ComponentKind:
    """Component kind of a canonical definition."""
    for model, kind in MODEL_KINDS.items():
        if isinstance(definition, model):
            return kind
    raise TypeError(f"Not a component definition: {type(definition).__name__}")


def key_of(definition: Any) -> str:
    """Storage key of a canonical definition."""
    return getattr(definition, KEY_FIELDS[kind_of(definition)])


class RegistryStorage:
    """
    Keyed index of component definitions.

    Mutations take a lock so ``clear`` is never observed half-done;
    callers registering from several threads need nothing else.
    """

    def __init__(self) -> None:
        self._items: dict[ComponentKind, dict[str, Any]] = {kind: {} for kind in ComponentKind}
        self._lock = threading.RLock()

    def add(self, definition: Any) -> None:
        """
        Store a definition under its key.

        An existing definition with the same key is replaced.
        """
        kind = kind_of(definition)
        key = key_of(definition)
        with self._lock:
            if key in self._items[kind]:
                logger.debug("Component replaced", kind=kind.value, key=key)
            self._items[kind][key] = definition

    def add_many(self, definitions: Iterable[Any]) -> None:
        """Store multiple definitions, in order."""
        with self._lock:
            for definition in definitions:
                self.add(definition)

    def get(self, kind: ComponentKind, key: str) -> Optional[Any]:
        """
        Get a definition by kind and key.

        Returns:
            The stored definition, or None if nothing is stored under ``key``
        """
        return self._items[kind].get(key)

    def get_all(self, kind: ComponentKind) -> list[Any]:
        """Snapshot of every definition of one kind."""
        with self._lock:
            return list(self._items[kind].values())

    def remove(self, kind: ComponentKind, key: str) -> bool:
        """
        Remove a definition.

        Returns:
            True if it was stored, False if not found
        """
        with self._lock:
            if key in self._items[kind]:
                del self._items[kind][key]
                logger.debug("Component removed", kind=kind.value, key=key)
                return True
            return False

    def clear(self) -> None:
        """Remove every definition of every kind."""
        with self._lock:
            for items in self._items.values():
                items.clear()

    @property
    def stats(self) -> RegistryStats:
        with self._lock:
            tools = len(self._items[ComponentKind.TOOL])
            resources = len(self._items[ComponentKind.RESOURCE])
            prompts = len(self._items[ComponentKind.PROMPT])
        return RegistryStats(
            tools=tools,
            resources=resources,
            prompts=prompts,
            total=tools + resources + prompts,
        )
