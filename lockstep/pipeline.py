"""Release pipelines: bump → rewrite → relock, and plan → build → publish.

This module wires the pure version bump engine and publish planner to the
workspace on disk:

Version bump
1. Read the shared version from the root pyproject.toml
2. Compute the next version for the requested policy
3. Rewrite every pyproject.toml still at the old version, including
   workspace dependencies pinned to it
4. Regenerate every uv.lock

Publish
1. Discover all packages in the workspace
2. Group them into publish levels (dependencies first)
3. Build and publish level by level; a failure stops everything
"""

from __future__ import annotations

import glob
import os
from pathlib import Path

from packaging.requirements import InvalidRequirement

from .deps import dep_canonical_name, rewrite_pyproject
from .errors import DuplicatePackage, InvalidDependency
from .graph import plan_publish_order
from .models import ManifestChange, PackageInfo, PublishPlan, ReleaseConfig, VersionBump
from .shell import debug, fatal, run, step
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_workspace_member_globs,
    get_workspace_version,
    load_pyproject,
)
from .versions import BumpPolicy, bump, parse_version

# Directories never searched for manifests or lock files
SKIP_DIRS = {"build", "dist", "node_modules", "venv", "__pycache__"}


def discover_packages(config: ReleaseConfig) -> dict[str, PackageInfo]:
    """Scan the workspace and discover all packages.

    Reads [tool.uv.workspace].members from root pyproject.toml to find
    package directories, then extracts name, version, and internal deps
    from each package's pyproject.toml.

    Returns:
        Map of package name to PackageInfo. Deps are package ids.

    Raises:
        DuplicatePackage: If two member directories declare the same name.
        InvalidDependency: If a member lists an unparseable dependency.
    """
    step("Discovering workspace packages")

    root = config.root
    root_doc = load_pyproject(root / "pyproject.toml")
    member_globs = get_workspace_member_globs(root_doc)

    # Expand globs to find all package directories
    member_dirs: list[Path] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / "pyproject.toml").exists() and p not in member_dirs:
                member_dirs.append(p)

    if not member_dirs:
        fatal("No packages found matching workspace members")

    # First pass: collect basic info from each package
    packages: dict[str, PackageInfo] = {}
    raw_deps: dict[str, list[str]] = {}

    for d in member_dirs:
        doc = load_pyproject(d / "pyproject.toml")
        name = get_project_name(doc, d.name)
        path = d.relative_to(root).as_posix()
        if name in packages:
            raise DuplicatePackage(name, [packages[name].path, path])
        packages[name] = PackageInfo(
            name=name, version=get_project_version(doc), path=path
        )
        raw_deps[name] = get_all_dependency_strings(doc)
        debug(f"loaded {d / 'pyproject.toml'}", config)

    # Second pass: identify which deps are internal (within workspace)
    for name, deps in raw_deps.items():
        for dep_str in deps:
            try:
                dep_name = dep_canonical_name(dep_str)
            except InvalidRequirement as exc:
                manifest = f"{packages[name].path}/pyproject.toml"
                raise InvalidDependency(manifest, dep_str) from exc
            # Only track internal deps, ignore external packages
            if dep_name in packages and dep_name != name:
                packages[name].deps.add(packages[dep_name].id)

    # Print discovered packages for user feedback
    for name, info in packages.items():
        dep_names = sorted(d.rsplit("@", 1)[0] for d in info.deps)
        deps = f" → [{', '.join(dep_names)}]" if dep_names else ""
        print(f"  {name} {info.version} ({info.path}){deps}")

    return packages


def find_files(root: Path, filename: str) -> list[Path]:
    """Find every file called ``filename`` below ``root``.

    Hidden directories (.git, .venv, ...) and build output directories are
    skipped.
    """
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # Prune in place so skipped trees are never entered
        dirnames[:] = [
            d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS
        ]
        if filename in filenames:
            found.append(Path(dirpath) / filename)
    return sorted(found)


def bump_workspace_version(
    policy: BumpPolicy, config: ReleaseConfig
) -> tuple[VersionBump, list[ManifestChange]]:
    """Bump the shared workspace version and rewrite every manifest.

    Every pyproject.toml whose [project].version equals the current version
    moves to the new one, as does every workspace dependency specifier that
    mentions the current version. Manifests at other versions are left alone.
    Lock files are regenerated afterwards.

    All changes are computed before any file is written, so a bad manifest
    leaves the workspace untouched.

    Raises:
        InvalidVersion: If the current version is not a semantic version.
        MalformedPrerelease: If the policy needs a prerelease it can't parse.
        InvalidDependency: If a manifest lists an unparseable dependency.
    """
    step("Bumping workspace version")

    root = config.root
    current = get_workspace_version(load_pyproject(root / "pyproject.toml"))
    new = str(bump(parse_version(current), policy))
    version_bump = VersionBump(old=current, new=new)
    print(f"  {current} → {new} ({policy.value})")

    manifests = find_files(root, "pyproject.toml")
    print(f"  found {len(manifests)} pyproject.toml files")

    # Every named project counts as a workspace package, members or not
    workspace_names: set[str] = set()
    for manifest in manifests:
        doc = load_pyproject(manifest)
        if doc.get("project", {}).get("name"):
            workspace_names.add(get_project_name(doc, manifest.parent.name))
    debug(f"workspace packages: {', '.join(sorted(workspace_names))}", config)

    changes: list[ManifestChange] = []
    touched: list[Path] = []
    for manifest in manifests:
        debug(f"processing {manifest}", config)
        changed = rewrite_pyproject(
            manifest, current, new, workspace_names, root=root, write=False
        )
        for change in changed:
            print(f"  {change.path}: {change.field} {change.old} → {change.new}")
        if changed:
            touched.append(manifest)
        changes.extend(changed)

    if config.dry_run:
        print("  Dry run: no files written")
        return version_bump, changes

    for manifest in touched:
        rewrite_pyproject(manifest, current, new, workspace_names, root=root)
    regenerate_lock_files(config)

    return version_bump, changes


def regenerate_lock_files(config: ReleaseConfig) -> None:
    """Run ``uv lock`` next to every uv.lock so pins follow the new version."""
    lock_files = find_files(config.root, "uv.lock")
    step(f"Regenerating {len(lock_files)} lock files")

    for lock_file in lock_files:
        lock_dir = lock_file.parent
        print(f"  uv lock ({lock_dir.relative_to(config.root).as_posix() or '.'})")
        result = run("uv", "lock", check=False, cwd=lock_dir)
        if result.returncode != 0:
            fatal(f"Failed to regenerate {lock_file}")


def compute_publish_plan(config: ReleaseConfig) -> PublishPlan:
    """Discover the workspace and group its packages into publish levels.

    Raises:
        DependencyCycle: If workspace packages depend on each other in a cycle.
    """
    packages = discover_packages(config)
    step("Planning publish order")
    plan = plan_publish_order(packages.values())
    for level in range(len(plan.levels)):
        names = ", ".join(p.name for p in plan.packages_in_level(level))
        print(f"  Level {level}: {names}")
    return plan


def publish_level(
    plan: PublishPlan,
    level: int,
    config: ReleaseConfig,
    publish_args: tuple[str, ...] = (),
) -> None:
    """Build and publish every package of one level.

    Packages of a level don't depend on each other, so their order here is
    only for readable output.
    """
    step(f"Publishing level {level}")

    for pkg in plan.packages_in_level(level):
        out_dir = Path("dist") / pkg.name
        commands = [
            ("uv", "build", pkg.path, "--out-dir", out_dir.as_posix()),
            ("uv", "publish", *publish_args, f"{out_dir.as_posix()}/*"),
        ]
        print(f"\n  {pkg.name} {pkg.version} ({pkg.path})")
        for cmd in commands:
            if config.dry_run:
                print(f"    would run: {' '.join(cmd)}")
                continue
            debug(f"running {' '.join(cmd)}", config)
            result = run(*cmd, check=False, cwd=config.root)
            if result.returncode != 0:
                fatal(f"Failed to {cmd[1]} {pkg.name}")


def publish_workspace(
    config: ReleaseConfig, publish_args: tuple[str, ...] = ()
) -> PublishPlan:
    """Publish all workspace packages, dependencies first.

    Level n+1 only starts after every package of level n was published;
    any failure exits before the next package.

    Args:
        config: Workspace root and options.
        publish_args: Extra arguments for ``uv publish`` (e.g. --index).
    """
    plan = compute_publish_plan(config)
    for level in range(len(plan.levels)):
        publish_level(plan, level, config, publish_args)

    print(f"\n{'=' * 60}\nDone!\n{'=' * 60}")
    return plan
