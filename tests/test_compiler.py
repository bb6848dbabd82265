"""Tests for the on-demand module compiler."""

import importlib.util
import sys

import pytest

from components.compiler import ModuleCompiler, relative_imports, resolve_import_target
from shared.errors import CompileError, ComponentLoadError


@pytest.fixture
def compiler(tmp_path):
    compiler = ModuleCompiler(project_root=tmp_path, output_dir=tmp_path / ".compiled")
    yield compiler
    compiler.cleanup()


class TestModuleCompiler:
    """Tests for ModuleCompiler."""

    @pytest.mark.asyncio
    async def test_compile_and_import(self, compiler, write_file):
        """Test compiling a source and importing its default export."""
        source = write_file("tools/greet/tool.py", """
            default = {"name": "greet"}
        """)

        compiled = await compiler.compile(source)
        module = compiler.import_module(compiled)

        assert compiled.path.is_file()
        assert compiled.path.suffix == ".pyc"
        assert compiled.module_name.startswith(compiler.package_name + ".")
        assert module.default == {"name": "greet"}

    @pytest.mark.asyncio
    async def test_output_mirrors_source_tree(self, compiler, tmp_path, write_file):
        """Test that the compiled path mirrors the source path relative to the root."""
        source = write_file("tools/greet/tool.py", "default = None\n")

        compiled = await compiler.compile(source)

        assert compiled.path == compiler.package_dir / "tools" / "greet" / "tool.pyc"
        assert (compiler.package_dir / "tools" / "__init__.pyc").is_file()
        assert (compiler.package_dir / "tools" / "greet" / "__init__.pyc").is_file()

    @pytest.mark.asyncio
    async def test_sanitized_names_do_not_collide(self, compiler, write_file):
        """Test that directories differing only in punctuation get separate modules."""
        dash = write_file("tools/my-tool/tool.py", "default = 'dash'\n")
        under = write_file("tools/my_tool/tool.py", "default = 'under'\n")

        first = await compiler.compile(dash)
        second = await compiler.compile(under)

        assert first.path != second.path
        assert first.module_name != second.module_name
        assert second.path == compiler.package_dir / "tools" / "my_tool" / "tool.pyc"
        assert compiler.import_module(first).default == "dash"
        assert compiler.import_module(second).default == "under"

    @pytest.mark.asyncio
    async def test_unchanged_source_reuses_artifact(self, compiler, write_file):
        """Test that a later pass keeps an artifact whose source hash still matches."""
        source = write_file("tools/a/tool.py", "default = 1\n")
        first = await compiler.compile(source)
        written = first.path.stat().st_mtime_ns

        compiler.reset()
        second = await compiler.compile(source)

        assert second.path == first.path
        assert second.path.stat().st_mtime_ns == written
        assert (compiler.package_dir / "__init__.pyc").is_file()
        assert compiler.import_module(second).default == 1

    @pytest.mark.asyncio
    async def test_hash_based_header(self, compiler, write_file):
        """Test that artifacts carry the magic number and the source hash."""
        source = write_file("tools/a/tool.py", "default = 1\n")

        compiled = await compiler.compile(source)
        header = compiled.path.read_bytes()[:16]

        assert header[:4] == importlib.util.MAGIC_NUMBER
        assert header[8:16] == importlib.util.source_hash(source.read_bytes())
        assert compiled.source_hash == header[8:16]

    @pytest.mark.asyncio
    async def test_syntax_error(self, compiler, write_file):
        """Test that a syntax error raises CompileError naming the file and line."""
        source = write_file("tools/broken/tool.py", """
            default = {
                "name": "broken",
            def
        """)

        with pytest.raises(CompileError) as exc_info:
            await compiler.compile(source)

        assert isinstance(exc_info.value, ComponentLoadError)
        assert exc_info.value.path == source.resolve()
        assert "line" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_missing_file(self, compiler, tmp_path):
        """Test that an unreadable file raises CompileError."""
        with pytest.raises(CompileError):
            await compiler.compile(tmp_path / "tools" / "missing" / "tool.py")

    @pytest.mark.asyncio
    async def test_relative_import(self, compiler, write_file):
        """Test that relative imports are compiled alongside the component."""
        write_file("tools/greet/helpers.py", """
            def greeting(name):
                return f"Hello, {name}!"
        """)
        source = write_file("tools/greet/tool.py", """
            from .helpers import greeting

            default = greeting("World")
        """)

        compiled = await compiler.compile(source)
        module = compiler.import_module(compiled)

        assert module.default == "Hello, World!"
        assert (compiler.package_dir / "tools" / "greet" / "helpers.pyc").is_file()

    @pytest.mark.asyncio
    async def test_parent_package_import(self, compiler, write_file):
        """Test importing from a parent directory's package module."""
        write_file("tools/common/__init__.py", """
            PREFIX = "common"
        """)
        source = write_file("tools/greet/tool.py", """
            from ..common import PREFIX

            default = PREFIX
        """)

        compiled = await compiler.compile(source)
        module = compiler.import_module(compiled)

        assert module.default == "common"

    @pytest.mark.asyncio
    async def test_import_cycle_terminates(self, compiler, write_file):
        """Test that mutually importing files are each compiled once."""
        write_file("tools/cycle/a.py", """
            from . import b
            VALUE = "a"
        """)
        write_file("tools/cycle/b.py", """
            from . import a
            VALUE = "b"
        """)
        source = write_file("tools/cycle/tool.py", """
            from .a import VALUE
            default = VALUE
        """)

        await compiler.compile(source)

        assert (compiler.package_dir / "tools" / "cycle" / "a.pyc").is_file()
        assert (compiler.package_dir / "tools" / "cycle" / "b.pyc").is_file()

    @pytest.mark.asyncio
    async def test_compile_once_per_pass(self, compiler, write_file):
        """Test that compiling the same file twice in a pass returns the same artifact."""
        source = write_file("tools/a/tool.py", "default = 1\n")

        first = await compiler.compile(source)
        second = await compiler.compile(source)

        assert first is second

    @pytest.mark.asyncio
    async def test_reset_picks_up_changes(self, compiler, write_file):
        """Test that a new pass recompiles a changed source."""
        source = write_file("tools/a/tool.py", "default = 1\n")
        first = await compiler.compile(source)
        assert compiler.import_module(first).default == 1

        compiler.reset()
        source.write_text("default = 2\n", encoding="utf-8")
        second = await compiler.compile(source)

        assert second.source_hash != first.source_hash
        assert compiler.import_module(second).default == 2

    @pytest.mark.asyncio
    async def test_reset_purges_modules(self, compiler, write_file):
        """Test that reset removes compiled modules from sys.modules."""
        source = write_file("tools/a/tool.py", "default = 1\n")
        compiled = await compiler.compile(source)
        compiler.import_module(compiled)
        assert compiled.module_name in sys.modules

        compiler.reset()

        assert compiled.module_name not in sys.modules

    @pytest.mark.asyncio
    async def test_outside_project_root(self, tmp_path, write_file):
        """Test that sources outside the project root are still compiled."""
        compiler = ModuleCompiler(project_root=tmp_path / "project", output_dir=tmp_path / ".out")
        source = write_file("elsewhere/tools/x/tool.py", "default = 'x'\n")

        try:
            compiled = await compiler.compile(source)
            assert "_abs" in compiled.path.parts
            assert compiler.import_module(compiled).default == "x"
        finally:
            compiler.cleanup()

    @pytest.mark.asyncio
    async def test_cleanup_removes_tree(self, tmp_path, write_file):
        """Test that cleanup deletes an owned temporary output directory."""
        compiler = ModuleCompiler(project_root=tmp_path)
        source = write_file("tools/a/tool.py", "default = 1\n")
        compiled = await compiler.compile(source)
        output_root = compiler.output_root
        assert output_root.is_dir()

        compiler.cleanup()

        assert not output_root.exists()
        assert compiler.package_name not in sys.modules
        assert not compiled.path.exists()


class TestImportResolution:
    """Tests for relative import helpers."""

    def test_relative_imports(self):
        """Test that only relative from-imports are reported."""
        import ast

        tree = ast.parse(
            "import os\n"
            "from pathlib import Path\n"
            "from .helpers import a, b\n"
            "from .. import shared\n"
        )

        assert list(relative_imports(tree)) == [
            (1, "helpers", ["a", "b"]),
            (2, None, ["shared"]),
        ]

    def test_candidate_order(self, tmp_path, write_file):
        """Test that a module file is preferred over a package of the same name."""
        write_file("pkg/util.py")
        write_file("pkg/util/__init__.py")
        write_file("pkg/other/__init__.py")
        write_file("pkg/legacy.pyc")

        assert resolve_import_target(tmp_path / "pkg" / "util") == tmp_path / "pkg" / "util.py"
        assert resolve_import_target(tmp_path / "pkg" / "other") == tmp_path / "pkg" / "other" / "__init__.py"
        assert resolve_import_target(tmp_path / "pkg" / "legacy") == tmp_path / "pkg" / "legacy.pyc"
        assert resolve_import_target(tmp_path / "pkg" / "missing") is None
