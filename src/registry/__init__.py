"""Component registry: storage plus the load-pass orchestrator."""

from registry.registry import ComponentRegistry
from registry.storage import RegistryStorage, key_of, kind_of

__all__ = [
    "ComponentRegistry",
    "RegistryStorage",
    "key_of",
    "kind_of",
]
