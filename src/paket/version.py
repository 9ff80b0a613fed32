"""Semantic version parsing and ordering.

The ``major.minor.patch`` core is compared with python-debian's ``Version``.
Pre-release identifiers follow semver precedence: numeric identifiers compare
numerically and sort before alphanumeric ones, alphanumeric identifiers compare
in ASCII order, and a version without a pre-release sorts after any that has one.
Build metadata never takes part in comparisons.
"""

import re
from functools import total_ordering

from debian.debian_support import Version

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


def _prerelease_key(prerelease: str | None) -> tuple[tuple[int, int, str], ...]:
    if not prerelease:
        return ()
    return tuple((0, int(part), "") if part.isdigit() else (1, 0, part) for part in prerelease.split("."))


@total_ordering
class PaketVersion:
    """A validated semantic version."""

    __slots__ = ("major", "minor", "patch", "prerelease", "build", "_core", "_prerelease_key")

    def __init__(
        self,
        major: int,
        minor: int,
        patch: int,
        prerelease: str | None = None,
        build: str | None = None,
    ):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.prerelease = prerelease
        self.build = build
        self._core = Version(f"{major}.{minor}.{patch}")
        self._prerelease_key = _prerelease_key(prerelease)

    @classmethod
    def parse(cls, value: str) -> "PaketVersion":
        """Parse a semver string.

        Raises:
            ValueError: if `value` is not a valid semantic version.
        """
        match = SEMVER_RE.match(value.strip()) if isinstance(value, str) else None
        if match is None:
            raise ValueError(f"'{value}' is not a valid semantic version")
        return cls(
            int(match["major"]),
            int(match["minor"]),
            int(match["patch"]),
            match["prerelease"],
            match["build"],
        )

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return isinstance(value, str) and SEMVER_RE.match(value.strip()) is not None

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text

    def __repr__(self) -> str:
        return f"PaketVersion('{self}')"

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            other = PaketVersion.parse(other)
        if not isinstance(other, PaketVersion):
            return NotImplemented
        return self._core == other._core and self._prerelease_key == other._prerelease_key

    def __lt__(self, other: object) -> bool:
        if isinstance(other, str):
            other = PaketVersion.parse(other)
        if not isinstance(other, PaketVersion):
            return NotImplemented
        if self._core != other._core:
            return self._core < other._core
        # a release sorts after its pre-releases
        if not self.prerelease or not other.prerelease:
            return bool(self.prerelease) and not other.prerelease
        return self._prerelease_key < other._prerelease_key
