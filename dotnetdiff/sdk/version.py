"""
Framework version identifiers.

A framework version names a .NET runtime build by its release version and the
dotnet/runtime commit it was built from, e.g.

    6.0.0-preview.4.21205.3+7b9ab0e196c78968bac455bf29a9845a85e4a022

Parsing is strict: anything that does not match the pattern exactly, or that
predates .NET 5, is rejected.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from dotnetdiff.core.exceptions import UnsupportedVersionError, VersionFormatError

PREVIEW_SPECIFIER = "-preview."
MINIMUM_MAJOR_VERSION = 5

_VERSION_FORMAT = re.compile(
    r"(?P<major>\d+)\.(?P<minor>\d+)\.\d+"
    r"(?:-preview\.(?P<preview>\d+)\.\d+\.\d+)?"
    r"\+(?P<commit>[0-9a-f]{40})"
)


@dataclass(frozen=True, eq=False)
class FrameworkVersion:
    """
    An immutable, validated framework version.

    Equality and hashing use the raw string only.

    Attributes:
        raw: The exact string the version was parsed from
        major: Major version number
        minor: Minor version number
        commit_hash: dotnet/runtime commit the build came from
        version: The version without the commit (e.g. '6.0.0-preview.4.21205.3')
        preview_number: Preview number for preview builds, None otherwise
    """

    raw: str
    major: int
    minor: int
    commit_hash: str
    version: str
    preview_number: Optional[int] = field(default=None)

    @classmethod
    def parse(cls, value: str) -> "FrameworkVersion":
        """
        Parse a version string.

        Args:
            value: Version string, MAJOR.MINOR.PATCH[-preview.N.X.Y]+<commit>

        Returns:
            Parsed version

        Raises:
            VersionFormatError: If value does not have the expected shape
            UnsupportedVersionError: If the major version is below 5

        Example:
            >>> v = FrameworkVersion.parse(
            ...     "6.0.0-preview.4.21205.3+7b9ab0e196c78968bac455bf29a9845a85e4a022")
            >>> v.moniker
            'net6.0'
        """
        match = _VERSION_FORMAT.fullmatch(value) if isinstance(value, str) else None
        if match is None:
            raise VersionFormatError(str(value))

        major = int(match.group("major"))
        if major < MINIMUM_MAJOR_VERSION:
            raise UnsupportedVersionError(value, major)

        preview = match.group("preview")
        version, commit_hash = value.split("+", 1)

        return cls(
            raw=value,
            major=major,
            minor=int(match.group("minor")),
            commit_hash=commit_hash,
            version=version,
            preview_number=int(preview) if preview is not None else None,
        )

    @property
    def moniker(self) -> str:
        """Target framework moniker, e.g. 'net6.0'."""
        return f"net{self.major}.0"

    @property
    def release(self) -> str:
        """Release channel, e.g. '6.0'."""
        return f"{self.major}.{self.minor}"

    @property
    def is_preview(self) -> bool:
        return PREVIEW_SPECIFIER in self.version

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FrameworkVersion):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __str__(self) -> str:
        return f".NET {self.version}, built from SHA {self.commit_hash}"
