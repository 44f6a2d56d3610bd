"""Exceptions raised by the version bump engine and the publish planner.

Each error keeps the offending literal value so it can be reported to the
operator verbatim and fixed in the source manifest.
"""

from __future__ import annotations

from collections.abc import Iterable


class LockstepError(Exception):
    """Base class for all lockstep errors."""


class MalformedPrerelease(LockstepError, ValueError):
    """A prerelease string is not ``<stage>.<integer>`` or has an unsupported stage."""

    def __init__(self, text: str, reason: str | None = None) -> None:
        self.text = text
        self.reason = reason
        message = f"unexpected prerelease format: {text}"
        if reason:
            message = f"{message}, {reason}"
        super().__init__(message)


class DependencyCycle(LockstepError, RuntimeError):
    """The workspace dependency graph contains at least one cycle."""

    def __init__(self, package_ids: Iterable[str]) -> None:
        self.package_ids = sorted(package_ids)
        super().__init__(
            f"Dependency cycle detected involving: {', '.join(self.package_ids)}"
        )


class DuplicatePackage(LockstepError, ValueError):
    """Two packages share the same id, or two members share the same name."""

    def __init__(self, package_id: str, paths: Iterable[str] = ()) -> None:
        self.package_id = package_id
        self.paths = list(paths)
        message = f"Duplicate package in workspace graph: {package_id}"
        if self.paths:
            message = f"{message} ({', '.join(self.paths)})"
        super().__init__(message)


class InvalidDependency(LockstepError, ValueError):
    """A manifest lists a dependency that is not a valid PEP 508 string."""

    def __init__(self, path: str, dependency: str) -> None:
        self.path = path
        self.dependency = dependency
        super().__init__(f"invalid dependency in {path}: {dependency!r}")


class InvalidVersion(LockstepError, ValueError):
    """A version string is not a valid semantic version."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"invalid semantic version: {text!r}")
