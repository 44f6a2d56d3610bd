"""Dependency graph utilities.

Computes the order in which workspace packages can be published. A package
may only be published once every workspace package it depends on has been
published, so packages are grouped into levels: level 0 holds packages with
no workspace dependencies, level 1 holds packages depending only on level 0,
and so on.
"""

from __future__ import annotations

from collections.abc import Iterable

from .errors import DependencyCycle, DuplicatePackage
from .models import PackageInfo, PublishPlan


def plan_publish_order(packages: Iterable[PackageInfo]) -> PublishPlan:
    """Group packages into publish levels by their internal dependencies.

    Uses a layered version of Kahn's algorithm: the packages whose
    dependencies are all placed form the next level. Order inside a level is
    not meaningful; use ``PublishPlan.packages_in_level`` for a stable one.

    Args:
        packages: Workspace packages. Dependencies on ids that are not among
            ``packages`` are treated as external and never block a level.

    Returns:
        A PublishPlan covering every package exactly once.

    Raises:
        DuplicatePackage: If two packages share an id.
        DependencyCycle: If some packages can never be placed. No partial
            plan is returned.

    Example:
        A has no deps, B and C depend on A, D depends on B and C:
        levels → [{A}, {B, C}, {D}]
    """
    id_to_package: dict[str, PackageInfo] = {}
    for pkg in packages:
        if pkg.id in id_to_package:
            raise DuplicatePackage(pkg.id)
        id_to_package[pkg.id] = pkg

    # Unresolved internal dependencies per package
    in_degree = {pkg_id: 0 for pkg_id in id_to_package}
    # Who depends on each package
    dependents: dict[str, list[str]] = {pkg_id: [] for pkg_id in id_to_package}

    for pkg_id, pkg in id_to_package.items():
        for dep in pkg.deps:
            if dep in id_to_package:
                in_degree[pkg_id] += 1
                dependents[dep].append(pkg_id)

    levels: list[set[str]] = []
    id_to_level: dict[str, int] = {}
    frontier = {pkg_id for pkg_id, degree in in_degree.items() if degree == 0}

    while frontier:
        level = len(levels)
        levels.append(frontier)
        for pkg_id in frontier:
            id_to_level[pkg_id] = level

        next_frontier: set[str] = set()
        for pkg_id in frontier:
            for dependent in dependents[pkg_id]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    next_frontier.add(dependent)
        frontier = next_frontier

    # Anything left over sits on or behind a cycle
    if len(id_to_level) != len(id_to_package):
        raise DependencyCycle(set(id_to_package) - set(id_to_level))

    return PublishPlan(
        levels=levels, id_to_level=id_to_level, id_to_package=id_to_package
    )
