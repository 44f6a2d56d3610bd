"""Version parsing and bumping utilities.

Versions are ``semver.Version`` objects. Bumping never mutates its input;
every policy returns a new version or raises ``MalformedPrerelease`` without
guessing what a malformed prerelease was meant to be.
"""

from __future__ import annotations

import re
from enum import Enum

import semver
from pydantic import BaseModel, ConfigDict

from .errors import InvalidVersion, MalformedPrerelease

# Largest value any version component may reach; increments stop here.
MAX_COMPONENT = 2**64 - 1

PROMOTIONS = {"alpha": "beta", "beta": "rc", "rc": None}

_PRERELEASE_RE = re.compile(r"(?P<stage>[^.]+)\.(?P<sequence>[0-9]+)", re.ASCII)


class BumpPolicy(str, Enum):
    """How to derive the next version from the current one."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PRERELEASE = "prerelease"
    PROMOTE_PRERELEASE = "promote-prerelease"
    PATCH_OR_PRERELEASE = "patch-or-prerelease"

    @property
    def help(self) -> str:
        return _POLICY_HELP[self]


_POLICY_HELP = {
    BumpPolicy.MAJOR: "x.y.z -> x+1.0.0",
    BumpPolicy.MINOR: "x.y.z -> x.y+1.0",
    BumpPolicy.PATCH: "x.y.z -> x.y.z+1",
    BumpPolicy.PRERELEASE: "x.y.z-<stage>.n -> x.y.z-<stage>.n+1",
    BumpPolicy.PROMOTE_PRERELEASE: "alpha.n -> beta.0 -> rc.0 -> release",
    BumpPolicy.PATCH_OR_PRERELEASE: "prerelease if present, otherwise patch",
}


class Prerelease(BaseModel):
    """A ``<stage>.<sequence>`` prerelease tag such as ``rc.2``."""

    model_config = ConfigDict(frozen=True)

    stage: str
    sequence: int

    @classmethod
    def parse(cls, text: str | None) -> Prerelease:
        """Parse a prerelease string.

        Raises:
            MalformedPrerelease: If ``text`` is empty or not ``<stage>.<integer>``.
        """
        match = _PRERELEASE_RE.fullmatch(text or "")
        if match is None:
            raise MalformedPrerelease(text or "")
        sequence = int(match["sequence"])
        if sequence > MAX_COMPONENT:
            raise MalformedPrerelease(text or "")
        return cls(stage=match["stage"], sequence=sequence)

    def __str__(self) -> str:
        return f"{self.stage}.{self.sequence}"


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Incomplete versions are padded with zeros, and prerelease and build
    metadata are kept:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3-rc.1+build.5" → "1.2.3-rc.1+build.5"

    Raises:
        InvalidVersion: If the string is not a semantic version.
    """
    try:
        return semver.Version.parse(version_str.strip(), optional_minor_and_patch=True)
    except (TypeError, ValueError) as exc:
        raise InvalidVersion(version_str) from exc


def _increment(value: int) -> int:
    return value if value >= MAX_COMPONENT else value + 1


def bump(current: semver.Version, policy: BumpPolicy) -> semver.Version:
    """Return the version that follows ``current`` under ``policy``.

    Only the fields a policy names change; build metadata is kept. ``major``
    does not clear an existing prerelease.

    Examples:
        bump(1.2.3, MINOR) → 1.3.0
        bump(1.2.3-alpha.0, PRERELEASE) → 1.2.3-alpha.1
        bump(1.2.3-rc.4, PROMOTE_PRERELEASE) → 1.2.3

    Raises:
        MalformedPrerelease: For prerelease policies when the prerelease is
            missing, unparseable or (promotion only) not alpha, beta or rc.
    """
    policy = BumpPolicy(policy)

    if policy is BumpPolicy.MAJOR:
        return current.replace(major=_increment(current.major), minor=0, patch=0)

    if policy is BumpPolicy.MINOR:
        return current.replace(minor=_increment(current.minor), patch=0)

    if policy is BumpPolicy.PATCH:
        return current.replace(patch=_increment(current.patch))

    if policy is BumpPolicy.PRERELEASE:
        pre = Prerelease.parse(current.prerelease)
        nxt = pre.model_copy(update={"sequence": _increment(pre.sequence)})
        return current.replace(prerelease=str(nxt))

    if policy is BumpPolicy.PROMOTE_PRERELEASE:
        pre = Prerelease.parse(current.prerelease)
        if pre.stage not in PROMOTIONS:
            raise MalformedPrerelease(
                str(current.prerelease),
                "only alpha, beta, and rc are supported",
            )
        next_stage = PROMOTIONS[pre.stage]
        if next_stage is None:
            return current.replace(prerelease=None)
        return current.replace(prerelease=f"{next_stage}.0")

    # PATCH_OR_PRERELEASE
    if current.prerelease:
        return bump(current, BumpPolicy.PRERELEASE)
    return bump(current, BumpPolicy.PATCH)


def bump_version_string(version_str: str, policy: BumpPolicy) -> str:
    """Parse, bump and format a version string.

    Examples:
        "1.2.3" → "1.2.4" (patch)
        "1.0" → "2.0.0" (major)
    """
    return str(bump(parse_version(version_str), policy))
