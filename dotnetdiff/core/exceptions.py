"""
Centralized exception hierarchy for dotnet-diff.

Errors fall into two families:

- UserError: the message is meant for display (bad input, a remote resource
  that could not be found, an unsupported platform). The CLI prints it and
  exits with a non-zero code.
- DeveloperError: an internal contract was broken. This is a bug and the CLI
  halts with the full traceback.
"""

import inspect
from pathlib import Path
from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class DotnetDiffError(Exception):
    """Base exception for all dotnet-diff errors."""

    pass


class UserError(DotnetDiffError):
    """An irrecoverable error whose message should be shown to the user."""

    pass


class DeveloperError(DotnetDiffError):
    """An irrecoverable error that is the result of a bug."""

    pass


# ============================================================================
# Input Validation Exceptions
# ============================================================================


class VersionFormatError(UserError):
    """Raised when a framework version string does not match the expected shape."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Invalid dotnet version: '{value}'. "
            f"Expected MAJOR.MINOR.PATCH[-preview.N.X.Y]+<40-character commit hash>"
        )


class UnsupportedVersionError(UserError):
    """Raised for well-formed versions that predate .NET 5."""

    def __init__(self, value: str, major: int):
        self.value = value
        self.major = major
        super().__init__(
            f"Only versions starting with .NET 5 are supported, got '{value}'"
        )


class RuntimeIdentifierFormatError(UserError):
    """Raised when a runtime identifier is not of the form <os>-<arch>."""

    pass


class UnsupportedPlatformError(UserError):
    """Raised for an operating system or CPU architecture that is not supported."""

    pass


class UnsupportedTargetError(UserError):
    """Raised when no artifact is published for the requested target."""

    pass


class ConfigurationError(UserError):
    """Raised when the settings file cannot be used."""

    pass


# ============================================================================
# Remote Exceptions
# ============================================================================


class RemoteQueryError(UserError):
    """Raised when a remote query fails with a transport or protocol error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message}, server returned: {status_code}"
        super().__init__(message)


class DownloadError(UserError):
    """Raised when a file download fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PackageDownloadError(DownloadError):
    """Raised when a package cannot be retrieved from the .NET feed."""

    pass


class ReleaseIndexError(UserError):
    """Raised when the .NET release index cannot be retrieved or understood."""

    pass


class CompatibleBuildNotFoundError(UserError):
    """Raised when the Jit search exhausts its budget without a hit."""

    def __init__(self, message: str, tried_commits: tuple = ()):
        self.tried_commits = tried_commits
        super().__init__(message)


# ============================================================================
# Installation Exceptions
# ============================================================================


class MissingArtifactError(UserError):
    """Raised when an artifact recorded as installed is not on disk."""

    def __init__(self, kind: str, path: Path):
        self.kind = kind
        self.path = path
        super().__init__(
            f"The {kind} recorded as installed is missing at '{path}'. "
            f"Reinstall it with 'dotnet-diff install'."
        )


class LedgerWriteError(UserError):
    """Raised when the installation ledger cannot be written."""

    pass


class InvalidArtifactError(DeveloperError):
    """Raised when a path does not have the shape of the artifact it claims to be."""

    pass


# ============================================================================
# Assertions
# ============================================================================


def dev_assert(condition: bool, message: Optional[str] = None) -> None:
    """
    Raise DeveloperError if condition does not hold.

    The error names the file and line of the failing call.

    Args:
        condition: Invariant that must be true
        message: Optional description of the invariant

    Raises:
        DeveloperError: If condition is false
    """
    if condition:
        return

    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    location = "<unknown>"
    if caller is not None:
        location = f"{caller.f_code.co_filename}:{caller.f_lineno}"

    detail = f": {message}" if message else ""
    raise DeveloperError(f"Assertion failed{detail} in {location}")
