"""Dependency handling utilities.

Provides functions for parsing PEP 508 dependency strings and rewriting
pyproject.toml files when the shared workspace version moves.
"""

from __future__ import annotations

from collections.abc import Collection
from pathlib import Path
from typing import Any, cast

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from .errors import InvalidDependency
from .models import ManifestChange
from .toml import iter_dependency_lists, load_pyproject, save_pyproject


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Handles version specifiers, extras, and normalizes the name per PEP 503
    (lowercase, hyphens instead of underscores).

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def same_version(left: str, right: str) -> bool:
    """Compare two versions under PEP 440 normalization.

    "1.2.3rc0" and "1.2.3-rc.0" are the same version. Strings that are not
    PEP 440 versions (such as wildcards) only match when spelled identically.
    """
    try:
        return Version(left) == Version(right)
    except InvalidVersion:
        return left == right


def retarget_dep(dep_str: str, old_version: str, new_version: str) -> str | None:
    """Move every specifier pinned at old_version to new_version.

    Extras and environment markers are preserved; extras and specifiers are
    written in sorted order. Versions are compared in PEP 440 normal form.
    Returns None when no specifier mentions old_version (or the dependency is
    a direct URL reference).

    Examples:
        retarget_dep("pkg==1.2.3", "1.2.3", "1.2.4") → "pkg==1.2.4"
        retarget_dep("pkg[a]>=1.2.3,<2", "1.2.3", "1.3.0") → "pkg[a]<2,>=1.3.0"
        retarget_dep("pkg>=1.0", "1.2.3", "1.2.4") → None
    """
    req = Requirement(dep_str)
    matches = {
        spec for spec in req.specifier if same_version(spec.version, old_version)
    }
    if req.url or not matches:
        return None

    specs = sorted(
        f"{spec.operator}{new_version if spec in matches else spec.version}"
        for spec in req.specifier
    )
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}{','.join(specs)}{marker}"


def rewrite_pyproject(
    pyproject_path: Path,
    old_version: str,
    new_version: str,
    workspace_names: Collection[str],
    *,
    root: Path | None = None,
    write: bool = True,
) -> list[ManifestChange]:
    """Move a manifest from old_version to new_version.

    This function:
    1. Updates [project].version if it currently equals old_version
    2. Retargets workspace dependencies whose specifiers mention old_version

    Dependencies are rewritten in all locations:
    - [project].dependencies
    - [project].optional-dependencies.*
    - [dependency-groups].*

    External dependencies are never touched, even when they happen to be
    pinned at the same version. Uses tomlkit to preserve formatting and
    comments; the file is only saved when something changed.

    Args:
        pyproject_path: Path to the pyproject.toml file.
        old_version: Current workspace version.
        new_version: Version to move to.
        workspace_names: Canonical names of all workspace packages.
        root: If given, reported paths are relative to it.
        write: If False, only report what would change.

    Returns:
        One ManifestChange per rewritten value.

    Raises:
        InvalidDependency: If a dependency string cannot be parsed. Nothing
            is written in that case.
    """
    doc = load_pyproject(pyproject_path)
    label = str(pyproject_path.relative_to(root) if root else pyproject_path)
    changes: list[ManifestChange] = []

    # Cast needed because tomlkit types are complex unions
    project = cast(dict[str, Any], doc.get("project", {}))
    if str(project.get("version", "")) == old_version:
        project["version"] = new_version
        changes.append(
            ManifestChange(
                path=label, field="project.version", old=old_version, new=new_version
            )
        )

    for field, deps in iter_dependency_lists(doc):
        for i, dep in enumerate(deps):
            if not isinstance(dep, str):
                continue
            dep_str = str(dep)
            try:
                if dep_canonical_name(dep_str) not in workspace_names:
                    continue
                retargeted = retarget_dep(dep_str, old_version, new_version)
            except InvalidRequirement as exc:
                raise InvalidDependency(label, dep_str) from exc
            if retargeted is not None:
                deps[i] = retargeted
                changes.append(
                    ManifestChange(path=label, field=field, old=dep_str, new=retargeted)
                )

    if changes and write:
        save_pyproject(pyproject_path, doc)
    return changes
