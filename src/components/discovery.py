"""Component file discovery.

Walks a directory tree and returns every file whose base name is one of
the reserved component file names. Directories are entered but never
matched themselves.
"""

import os
from pathlib import Path
from typing import Optional, Union

from shared.logging import get_logger
from shared.models import ComponentKind

logger = get_logger(__name__)

SOURCE_SUFFIX = ".py"
COMPILED_SUFFIX = ".pyc"

RESERVED_FILE_NAMES: dict[ComponentKind, frozenset[str]] = {
    kind: frozenset({f"{kind.value}{SOURCE_SUFFIX}", f"{kind.value}{COMPILED_SUFFIX}"})
    for kind in ComponentKind
}

ALL_RESERVED_FILE_NAMES = frozenset().union(*RESERVED_FILE_NAMES.values())


def kind_for_file(path: Union[str, Path]) -> Optional[ComponentKind]:
    """Return the component kind a file name is reserved for, if any."""
    name = Path(path).name
    for kind, names in RESERVED_FILE_NAMES.items():
        if name in names:
            return kind
    return None


def find_component_files(
    root: Union[str, Path],
    pattern: Optional[str] = None,
) -> list[Path]:
    """
    Recursively find all component files below ``root``.

    Symbolic links to directories are followed, but each real directory
    is entered at most once so link cycles terminate.

    Args:
        root: Directory to scan. A missing directory yields an empty list.
        pattern: Optional glob that the path relative to ``root`` must
            also match (``pathlib.PurePath.match`` semantics).

    Returns:
        Sorted list of absolute file paths, without duplicates.
    """
    root_path = Path(root).absolute()
    if not root_path.is_dir():
        return []

    found: set[Path] = set()
    visited: set[str] = set()

    for current, dirnames, filenames in os.walk(root_path, followlinks=True):
        real = os.path.realpath(current)
        if real in visited:
            # Reached again through a symlink; don't descend further
            dirnames[:] = []
            continue
        visited.add(real)
        dirnames.sort()

        for filename in filenames:
            if filename not in ALL_RESERVED_FILE_NAMES:
                continue
            path = Path(current) / filename
            if not path.is_file():
                continue
            if pattern and not path.relative_to(root_path).match(pattern):
                continue
            found.add(path)

    files = sorted(found)
    logger.debug("Component files discovered", root=root_path, count=len(files))
    return files
