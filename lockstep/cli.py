"""CLI entry point for lockstep."""

from __future__ import annotations

import contextlib
import json
import sys
from pathlib import Path

import click

from lockstep.errors import LockstepError
from lockstep.models import ReleaseConfig
from lockstep.pipeline import (
    bump_workspace_version,
    compute_publish_plan,
    publish_workspace,
)
from lockstep.shell import git_root
from lockstep.versions import BumpPolicy

BUMP_HELP = "\n".join(
    [
        "Bump the workspace version in every manifest.",
        "",
        "POLICY is one of:",
        "",
        "\b",
        *(f"  {p.value:<20} {p.help}" for p in BumpPolicy),
    ]
)


@click.group()
@click.version_option(package_name="lockstep")
@click.option("-v", "--verbose", is_flag=True, help="Print debug details.")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root. Defaults to the git top level, else the current directory.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, root: Path | None) -> None:
    """Version and publish a uv workspace in lockstep."""
    if root is None:
        root = git_root(Path.cwd()) or Path.cwd()

    # Sanity check
    if not (root / "pyproject.toml").exists():
        raise click.ClickException(f"No pyproject.toml found in {root}.")

    ctx.obj = ReleaseConfig(root=root.resolve(), verbose=verbose)


@cli.command("bump-version", help=BUMP_HELP)
@click.argument(
    "policy",
    type=click.Choice([p.value for p in BumpPolicy]),
    metavar="POLICY",
)
@click.option("--dry-run", is_flag=True, help="Show changes without writing them.")
@click.pass_obj
def bump_version(config: ReleaseConfig, policy: str, dry_run: bool) -> None:
    config = config.model_copy(update={"dry_run": dry_run})
    try:
        version_bump, changes = bump_workspace_version(BumpPolicy(policy), config)
    except LockstepError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"\n✓ {version_bump.old} → {version_bump.new} "
        f"({len(changes)} values in {len({c.path for c in changes})} manifests)"
    )


@cli.command("publish-order")
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON.")
@click.pass_obj
def publish_order(config: ReleaseConfig, as_json: bool) -> None:
    """Print the order in which workspace packages must be published."""
    try:
        # Keep stdout clean for the JSON document
        with contextlib.redirect_stdout(sys.stderr if as_json else sys.stdout):
            plan = compute_publish_plan(config)
    except LockstepError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        levels = [
            [
                pkg.model_dump(include={"name", "version", "path"})
                for pkg in plan.packages_in_level(level)
            ]
            for level in range(len(plan.levels))
        ]
        click.echo(json.dumps({"levels": levels}, indent=2))


@cli.command()
@click.option("--dry-run", is_flag=True, help="Print commands instead of running them.")
@click.option(
    "--publish-arg",
    "publish_args",
    multiple=True,
    help="Extra argument for `uv publish` (repeatable), e.g. --publish-arg=--verbose.",
)
@click.pass_obj
def publish(
    config: ReleaseConfig, dry_run: bool, publish_args: tuple[str, ...]
) -> None:
    """Build and publish every workspace package, dependencies first."""
    config = config.model_copy(update={"dry_run": dry_run})
    try:
        publish_workspace(config, publish_args)
    except LockstepError as exc:
        raise click.ClickException(str(exc)) from exc
