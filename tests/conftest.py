"""Shared fixtures for component framework tests."""

import textwrap
from pathlib import Path

import pytest

from shared.config import AutoloadOptions, AutoloadSettings, RegistrySettings


@pytest.fixture
def write_file(tmp_path):
    """Write a (dedented) file below tmp_path and return its path."""

    def _write(relative: str, content: str = "") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def autoload(tmp_path) -> AutoloadSettings:
    """Autoload settings pointing at tools/, resources/ and prompts/ under tmp_path."""
    return AutoloadSettings(
        tools=AutoloadOptions(directory=str(tmp_path / "tools")),
        resources=AutoloadOptions(directory=str(tmp_path / "resources")),
        prompts=AutoloadOptions(directory=str(tmp_path / "prompts")),
    )


@pytest.fixture
def registry_settings(tmp_path) -> RegistrySettings:
    """Registry settings compiling into tmp_path/.compiled."""
    return RegistrySettings(
        project_root=str(tmp_path),
        compile_dir=str(tmp_path / ".compiled"),
    )
