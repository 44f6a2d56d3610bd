"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from lockstep.models import ReleaseConfig


def write_package(root: Path, name: str, version: str, deps: list[str]) -> Path:
    """Write packages/<name>/pyproject.toml and return its path."""
    pkg_dir = root / "packages" / name
    pkg_dir.mkdir(parents=True)
    dep_lines = "".join(f'    "{dep}",\n' for dep in deps)
    pyproject = pkg_dir / "pyproject.toml"
    pyproject.write_text(
        f'[project]\nname = "{name}"\nversion = "{version}"\n'
        f"dependencies = [\n{dep_lines}]\n"
    )
    return pyproject


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"  # shared workspace version
dependencies = [
    "requests==1.0.0",
    "internal-dep==1.0.0",
    "loose-internal>=0.5",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal[extra]>=1.0.0,<2"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal~=1.0.0", {include-group = "lint"}]
lint = ["ruff"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0", {include-group = "docs"}]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]
"""
    return tomlkit.parse(content)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A uv workspace at 1.2.3 with a diamond of internal dependencies.

    core ← (api, utils) ← app, plus a vendored package at another version.
    """
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "demo-root"\nversion = "1.2.3"\n'
        'dependencies = ["app==1.2.3"]\n\n'
        '[tool.uv.workspace]\nmembers = ["packages/*"]\n'
    )
    (tmp_path / "uv.lock").write_text("version = 1\n")
    write_package(tmp_path, "core", "1.2.3", ["requests>=2.0"])
    write_package(tmp_path, "api", "1.2.3", ["core==1.2.3"])
    write_package(tmp_path, "utils", "1.2.3", ["core>=1.2.3,<2", "requests==1.2.3"])
    write_package(tmp_path, "app", "1.2.3", ["api==1.2.3", "utils==1.2.3"])
    write_package(tmp_path, "vendored", "0.4.0", ["core>=1.0"])
    return tmp_path


@pytest.fixture
def config(workspace: Path) -> ReleaseConfig:
    return ReleaseConfig(root=workspace)
