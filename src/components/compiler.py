"""On-demand compilation of component sources.

Component sources (``.py``) are compiled into CPython bytecode and laid
out in a private package tree under a temporary directory, mirroring
their location below the project root. Relative imports found in a
source are resolved against the original tree and compiled into the
same output tree, so the compiled module imports cleanly without the
component directories being packages on ``sys.path``.

Compiled files use the hash-based pyc layout (PEP 552). The embedded
source hash doubles as the cache key: an artifact whose hash matches the
current source is reused rather than rewritten.
"""

import ast
import hashlib
import importlib
import importlib.util
import marshal
import re
import shutil
import sys
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Iterator, Optional, Union

import aiofiles

from shared.errors import CompileError
from shared.logging import get_logger

logger = get_logger(__name__)

PACKAGE_PREFIX = "_mcp_components_"
INIT_STEM = "__init__"
PYC_SUFFIX = ".pyc"

# flags word: bit 0 = hash-based, bit 1 = check_source (off)
_HASH_BASED_UNCHECKED = (0b01).to_bytes(4, "little")
_HEADER_SIZE = 16


@dataclass(frozen=True)
class CompiledModule:
    """A compiled artifact and the dotted name it is importable under."""
    source_path: Path
    path: Path
    module_name: str
    source_hash: bytes


def _identifier(part: str) -> str:
    ident = re.sub(r"\W", "_", part)
    if not ident or ident[0].isdigit():
        ident = f"_{ident}"
    if ident != part:
        # my-tool and my_tool must not end up as the same module
        ident = f"{ident}_{hashlib.sha1(part.encode('utf-8')).hexdigest()[:8]}"
    return ident


def _pyc_bytes(code, source_hash: bytes) -> bytes:
    data = bytearray(importlib.util.MAGIC_NUMBER)
    data.extend(_HASH_BASED_UNCHECKED)
    data.extend(source_hash)
    data.extend(marshal.dumps(code))
    return bytes(data)


def _describe(error: Exception) -> str:
    if isinstance(error, SyntaxError):
        return f"{error.msg} (line {error.lineno})"
    return str(error)


def relative_imports(tree: ast.AST) -> Iterator[tuple[int, Optional[str], list[str]]]:
    """Yield ``(level, module, names)`` for every relative ``from`` import."""
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.level > 0:
            names = [alias.name for alias in node.names if alias.name != "*"]
            yield node.level, node.module, names


def resolve_import_target(base: Path) -> Optional[Path]:
    """
    Locate the file a relative import target refers to.

    Candidates are tried in a fixed order: ``<base>.py``,
    ``<base>/__init__.py``, ``<base>.pyc``.
    """
    candidates = (
        base.with_name(base.name + ".py"),
        base / f"{INIT_STEM}.py",
        base.with_name(base.name + PYC_SUFFIX),
    )
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


class ModuleCompiler:
    """
    Compiles component sources into a private, importable package tree.

    One compiler is shared by a registry for its lifetime. Each load pass
    starts with ``reset()``, which clears the per-pass seen-set so every
    file is compiled at most once per pass (import cycles terminate) and
    drops stale compiled modules from ``sys.modules``.
    """

    def __init__(
        self,
        project_root: Union[str, Path, None] = None,
        output_dir: Union[str, Path, None] = None,
    ) -> None:
        self.project_root = Path(project_root or Path.cwd()).resolve()
        self._owns_output = output_dir is None
        self._output_dir: Optional[Path] = Path(output_dir).resolve() if output_dir else None
        self.package_name = f"{PACKAGE_PREFIX}{uuid.uuid4().hex[:12]}"
        self._seen: dict[Path, CompiledModule] = {}

    @property
    def output_root(self) -> Path:
        """Directory holding the compiled package; created on first use."""
        if self._output_dir is None:
            self._output_dir = Path(tempfile.mkdtemp(prefix="mcp-autoload-"))
        return self._output_dir

    @property
    def package_dir(self) -> Path:
        return self.output_root / self.package_name

    def target_path_for(self, source_path: Union[str, Path]) -> Path:
        """Deterministic output path of a source file inside the compiled tree."""
        source_path = Path(source_path).resolve()
        try:
            parts = source_path.relative_to(self.project_root).parts
        except ValueError:
            parts = ("_abs",) + source_path.parts[1:]
        *dirs, filename = parts
        stem = filename.split(".", 1)[0]
        return self.package_dir.joinpath(
            *(_identifier(d) for d in dirs), _identifier(stem) + PYC_SUFFIX
        )

    def module_name_for(self, target: Path) -> str:
        parts = list(target.relative_to(self.output_root).with_suffix("").parts)
        if parts[-1] == INIT_STEM:
            parts.pop()
        return ".".join(parts)

    def reset(self) -> None:
        """Start a new compile pass."""
        self._seen.clear()
        prefix = f"{self.package_name}."
        for name in [n for n in sys.modules if n.startswith(prefix)]:
            del sys.modules[name]
        importlib.invalidate_caches()

    def cleanup(self) -> None:
        """Forget all compiled modules and delete the compiled tree."""
        self.reset()
        sys.modules.pop(self.package_name, None)
        if self._output_dir is None:
            return
        if self._owns_output:
            shutil.rmtree(self._output_dir, ignore_errors=True)
            self._output_dir = None
        else:
            shutil.rmtree(self.package_dir, ignore_errors=True)

    async def compile(self, source_path: Union[str, Path]) -> CompiledModule:
        """
        Compile a source file and, recursively, its relative imports.

        Args:
            source_path: Path to a ``.py`` source (``.pyc`` files are copied)

        Returns:
            The compiled artifact for ``source_path``

        Raises:
            CompileError: If the file cannot be read or does not compile
        """
        source_path = Path(source_path).resolve()
        if source_path in self._seen:
            return self._seen[source_path]

        await self._ensure_root_package()
        target = self.target_path_for(source_path)

        try:
            async with aiofiles.open(source_path, "rb") as f:
                source = await f.read()
        except OSError as e:
            raise CompileError(source_path, str(e)) from e

        if source_path.suffix == PYC_SUFFIX:
            compiled = CompiledModule(source_path, target, self.module_name_for(target), b"")
            self._seen[source_path] = compiled
            await self._ensure_packages(target.parent)
            await self._write(target, source)
            return compiled

        source_hash = importlib.util.source_hash(source)
        compiled = CompiledModule(source_path, target, self.module_name_for(target), source_hash)
        self._seen[source_path] = compiled

        try:
            tree = ast.parse(source, filename=str(source_path))
        except (SyntaxError, ValueError) as e:
            self._seen.pop(source_path, None)
            raise CompileError(source_path, _describe(e)) from e

        await self._ensure_packages(target.parent)
        if await self._is_current(target, source_hash):
            logger.debug("Compiled module reused", source=source_path)
        else:
            try:
                code = compile(tree, str(source_path), "exec", dont_inherit=True)
            except (SyntaxError, ValueError) as e:
                self._seen.pop(source_path, None)
                raise CompileError(source_path, _describe(e)) from e
            await self._write(target, _pyc_bytes(code, source_hash))
            logger.debug("Module compiled", source=source_path, target=target)

        await self._compile_relative_imports(tree, source_path)
        return compiled

    def import_module(self, compiled: CompiledModule) -> ModuleType:
        """Import a compiled artifact through the compiled package."""
        importlib.invalidate_caches()
        return importlib.import_module(compiled.module_name)

    async def _compile_relative_imports(self, tree: ast.AST, source_path: Path) -> None:
        for target in self._import_targets(tree, source_path):
            await self.compile(target)

    def _import_targets(self, tree: ast.AST, source_path: Path) -> list[Path]:
        targets: list[Path] = []
        for level, module, names in relative_imports(tree):
            package_dir = source_path.parent
            for _ in range(level - 1):
                package_dir = package_dir.parent

            if module:
                base = package_dir.joinpath(*module.split("."))
                found = resolve_import_target(base)
                if found is None:
                    continue
                targets.append(found)
                if found.name == f"{INIT_STEM}.py":
                    # from .pkg import submodule
                    targets.extend(
                        sub for sub in (resolve_import_target(base / n) for n in names) if sub
                    )
                continue

            for name in names:
                found = resolve_import_target(package_dir / name)
                if found is None:
                    # Attribute of the package itself
                    found = resolve_import_target(package_dir)
                if found is not None:
                    targets.append(found)

        # Keep the order stable while dropping duplicates
        return list(dict.fromkeys(targets))

    async def _is_current(self, target: Path, source_hash: bytes) -> bool:
        if not target.is_file():
            return False
        async with aiofiles.open(target, "rb") as f:
            header = await f.read(_HEADER_SIZE)
        return (
            len(header) == _HEADER_SIZE
            and header[:4] == importlib.util.MAGIC_NUMBER
            and header[4:8] == _HASH_BASED_UNCHECKED
            and header[8:16] == source_hash
        )

    def _empty_module(self, target: Path) -> bytes:
        code = compile("", str(target), "exec", dont_inherit=True)
        return _pyc_bytes(code, importlib.util.source_hash(b""))

    async def _ensure_packages(self, directory: Path) -> None:
        """Make every directory between the package root and ``directory`` a package."""
        directory.mkdir(parents=True, exist_ok=True)
        current = directory
        while current != self.package_dir and self.package_dir in current.parents:
            init = current / f"{INIT_STEM}{PYC_SUFFIX}"
            if not init.exists():
                await self._write(init, self._empty_module(init))
            current = current.parent

    async def _ensure_root_package(self) -> None:
        if self.package_name in sys.modules:
            return
        init = self.package_dir / f"{INIT_STEM}{PYC_SUFFIX}"
        if not init.exists():
            await self._write(init, self._empty_module(init))
        spec = importlib.util.spec_from_file_location(
            self.package_name, init, submodule_search_locations=[str(self.package_dir)]
        )
        module = importlib.util.module_from_spec(spec)
        sys.modules[self.package_name] = module
        spec.loader.exec_module(module)

    async def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(data)
