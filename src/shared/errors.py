"""Error types for the component framework.

File-level errors (compile, import) carry the path of the file that
failed so the registry can collect them without aborting a load pass.
"""

from pathlib import Path
from typing import Iterable, Union


class ComponentError(Exception):
    """Base class for all component framework errors."""


class ComponentLoadError(ComponentError):
    """A component file could not be compiled or imported."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class CompileError(ComponentLoadError):
    """A component source file failed to compile."""


class ComponentImportError(ComponentLoadError):
    """A compiled component module raised while being imported."""


class ToolValidationError(ComponentError):
    """One or more tools failed structural validation.

    All messages are collected before raising; ``messages`` keeps them
    individually.
    """

    def __init__(self, messages: Iterable[str]) -> None:
        self.messages = list(messages)
        details = "\n".join(f"  - {m}" for m in self.messages)
        super().__init__(f"Tool validation failed:\n{details}")


class RegistryItemNotFoundError(ComponentError):
    """A registry lookup found nothing under the given key."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"Registry item not found: type='{kind}', id='{key}'")


class RegistryItemLoadError(ComponentError):
    """A registry item could not be registered."""

    def __init__(self, kind: str, key: str, reason: str = "") -> None:
        self.kind = kind
        self.key = key
        super().__init__(
            f"Failed to load registry item: type='{kind}', id='{key}'. {reason}".rstrip()
        )


class InvalidCursorError(ComponentError):
    """A pagination cursor could not be decoded."""

    code = -32602

    def __init__(self, cursor: str) -> None:
        self.cursor = cursor
        super().__init__("Invalid cursor")
