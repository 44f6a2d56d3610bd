"""TOML reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying pyproject.toml
files. This is important for maintaining readable, diff-friendly files.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import tomlkit
from packaging.utils import canonicalize_name

from .shell import fatal


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract the canonical package name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Args:
        doc: Parsed pyproject.toml document.
        fallback: Value to return if name is not specified.
    """
    return canonicalize_name(doc.get("project", {}).get("name", fallback))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version, defaulting to '0.0.0'."""
    return str(doc.get("project", {}).get("version", "0.0.0"))


def get_workspace_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract the shared workspace version from the root [project].version.

    Unlike get_project_version() there is no default: the version being
    bumped has to be written down somewhere.

    Raises:
        SystemExit: If the root manifest has no static version.
    """
    version = doc.get("project", {}).get("version")
    if not version:
        fatal("No [project].version defined in root pyproject.toml")
    return str(version)


def iter_dependency_lists(doc: tomlkit.TOMLDocument) -> Iterator[tuple[str, list]]:
    """Yield (field, list) for every dependency list in a pyproject.toml.

    Covers three locations:
    - [project].dependencies (main runtime deps)
    - [project].optional-dependencies.* (extras like [dev], [test])
    - [dependency-groups].* (PEP 735 dependency groups)

    The lists are the live tomlkit arrays, so callers may edit them in place.
    Group lists may also hold tables such as {include-group = "test"}.
    """
    project = doc.get("project", {})
    deps = project.get("dependencies")
    if isinstance(deps, list):
        yield "project.dependencies", deps

    opt_deps = project.get("optional-dependencies")
    if isinstance(opt_deps, dict):
        for group, group_deps in opt_deps.items():
            if isinstance(group_deps, list):
                yield f"project.optional-dependencies.{group}", group_deps

    dep_groups = doc.get("dependency-groups")
    if isinstance(dep_groups, dict):
        for group, group_deps in dep_groups.items():
            if isinstance(group_deps, list):
                yield f"dependency-groups.{group}", group_deps


def get_all_dependency_strings(doc: tomlkit.TOMLDocument) -> list[str]:
    """Collect all dependency strings from a pyproject.toml.

    Returns raw PEP 508 strings like "requests>=2.0" or "pkg[extra]~=1.0".
    """
    return [
        str(dep)
        for _, deps in iter_dependency_lists(doc)
        for dep in deps
        if isinstance(dep, str)
    ]


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract workspace member glob patterns from [tool.uv.workspace].

    These patterns (e.g., "packages/*", "libs/*") define which directories
    contain workspace packages.

    Raises:
        SystemExit: If no workspace members are defined.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    if not members:
        fatal("No [tool.uv.workspace] members defined in root pyproject.toml")
    return list(members)
