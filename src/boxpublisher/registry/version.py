"""Semantic version parsing and auto-bump rules for box versions.

Version strings follow semver 2.0:
    {major}.{minor}.{patch}[-{pre_release}][+{build}]

Ordering only looks at major.minor.patch; pre-release and build metadata are
kept for display but ignored when picking the latest version.

Example:
    1.2.7-rc.1+build.5
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, order=True)
class SemVer:
    """Parsed semantic version.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        pre_release: Pre-release tag (not used for ordering).
        build: Build metadata (not used for ordering).
    """

    major: int
    minor: int
    patch: int
    pre_release: str = field(default="", compare=False)
    build: str = field(default="", compare=False)

    def __str__(self) -> str:
        """Render as a version string."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre_release:
            text += f"-{self.pre_release}"
        if self.build:
            text += f"+{self.build}"
        return text

    def bump_minor(self) -> SemVer:
        """Next minor line: major kept, patch reset, metadata dropped."""
        return SemVer(major=self.major, minor=self.minor + 1, patch=0)


ZERO_VERSION = SemVer(0, 0, 0)

SEMVER_PATTERN = re.compile(
    r"^"
    r"(?P<major>0|[1-9]\d*)\."
    r"(?P<minor>0|[1-9]\d*)\."
    r"(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre_release>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"$"
)


def parse_semver(version_str: str) -> SemVer:
    """Parse a semantic version string.

    Args:
        version_str: Version string such as "1.2.3" or "1.2.3-beta+42".

    Returns:
        Parsed SemVer.

    Raises:
        ValueError: If the value is not a semantic version string.
    """
    if not isinstance(version_str, str):
        msg = f"Invalid semantic version: {version_str!r}. Expected a string"
        raise ValueError(msg)

    match = SEMVER_PATTERN.match(version_str.strip())
    if not match:
        msg = f"Invalid semantic version: {version_str!r}. Expected format: X.Y.Z"
        raise ValueError(msg)

    return SemVer(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        pre_release=match.group("pre_release") or "",
        build=match.group("build") or "",
    )


def latest_version(version_strs: Iterable[str]) -> SemVer:
    """Return the highest parseable version, or 0.0.0 if none parse.

    Unparseable entries are skipped.
    """
    latest = ZERO_VERSION
    for version_str in version_strs:
        try:
            candidate = parse_semver(version_str)
        except ValueError:
            continue
        if candidate > latest:
            latest = candidate
    return latest


def next_version(version_strs: Iterable[str]) -> SemVer:
    """Return the version a new box gets when none is given explicitly."""
    return latest_version(version_strs).bump_minor()
