"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running shell commands
and git operations, plus output formatting helpers.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

if TYPE_CHECKING:
    from .models import ReleaseConfig


def git(*args: str, check: bool = True, cwd: Path | None = None) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., outside a repo).
        cwd: Directory to run git in; defaults to the current directory.

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(
        ["git", *args], capture_output=True, text=True, check=check, cwd=cwd
    )
    return result.stdout.strip()


def git_root(start: Path | None = None) -> Path | None:
    """Return the top level of the git checkout containing ``start``.

    Returns None outside a git repository.
    """
    try:
        top = git("rev-parse", "--show-toplevel", check=False, cwd=start)
    except FileNotFoundError:
        # git is not installed
        return None
    return Path(top) if top else None


def run(
    *args: str, check: bool = True, cwd: Path | None = None
) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary shell command.

    Unlike git(), this doesn't capture output - it streams directly to
    the terminal so users can see build and upload progress.

    Args:
        *args: Command and arguments (e.g., "uv", "build", "pkg/").
        check: If True (default), raise on non-zero exit.
        cwd: Directory to run the command in.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    return subprocess.run(args, check=check, cwd=cwd)


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a command in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def debug(msg: str, config: ReleaseConfig) -> None:
    """Print a detail line, only when running with --verbose."""
    if config.verbose:
        print(f"  [debug] {msg}")


def fatal(msg: str) -> NoReturn:
    """Print an error message and exit with code 1.

    Use for unrecoverable errors that should halt the pipeline.
    """
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)
