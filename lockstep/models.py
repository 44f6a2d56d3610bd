"""Data models for lockstep.

These Pydantic models represent the core data structures shared by the
version bump, manifest rewrite and publish pipelines.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class PackageInfo(BaseModel):
    """Metadata for a single package in the workspace.

    Attributes:
        name: Canonical (PEP 503) package name.
        version: Current version string from pyproject.toml.
        path: Relative path from workspace root to the package directory.
        deps: Ids of internal (workspace) dependencies. External deps are
              not tracked here since they never affect publish order.
    """

    name: str
    version: str
    path: str
    deps: set[str] = Field(default_factory=set)

    @property
    def id(self) -> str:
        """Stable graph key, unique per package name and version."""
        return f"{self.name}@{self.version}"


class PublishPlan(BaseModel):
    """Packages grouped into levels that can be published one after another.

    Every dependency of a package in level ``n`` lives in a level below
    ``n``, so all packages of one level may be published together once the
    previous level is done.

    Attributes:
        levels: Package ids per level, level 0 first.
        id_to_level: Level index of every package id.
        id_to_package: The package behind every id.
    """

    levels: list[set[str]] = Field(default_factory=list)
    id_to_level: dict[str, int] = Field(default_factory=dict)
    id_to_package: dict[str, PackageInfo] = Field(default_factory=dict)

    def packages_in_level(self, level: int) -> list[PackageInfo]:
        """Return the packages of one level sorted by name."""
        pkgs = [self.id_to_package[pkg_id] for pkg_id in self.levels[level]]
        return sorted(pkgs, key=lambda p: (p.name, p.version))

    def order(self) -> list[PackageInfo]:
        """Flatten the plan into a single publish order."""
        return [
            pkg
            for level in range(len(self.levels))
            for pkg in self.packages_in_level(level)
        ]


class VersionBump(BaseModel):
    """Records a version change for the workspace.

    Attributes:
        old: The version before bumping.
        new: The version after bumping.
    """

    old: str
    new: str


class ManifestChange(BaseModel):
    """One value rewritten in one manifest during a version bump.

    Attributes:
        path: Manifest path relative to the workspace root.
        field: What was changed, e.g. ``project.version`` or
               ``project.dependencies``.
        old: Value before the rewrite.
        new: Value after the rewrite.
    """

    path: str
    field: str
    old: str
    new: str


class ReleaseConfig(BaseModel):
    """Options threaded through the orchestration functions.

    Attributes:
        root: Workspace root (the directory holding the root pyproject.toml).
        verbose: Print debug details in addition to the normal output.
        dry_run: Compute and report changes without writing files or
                 running external tools.
    """

    root: Path
    verbose: bool = False
    dry_run: bool = False
