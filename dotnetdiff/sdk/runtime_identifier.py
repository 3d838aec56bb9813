"""
Runtime identifiers (RIDs) and host file naming conventions.

A runtime identifier is an (operating system, CPU architecture) pair written
in the canonical lowercase form used by .NET packages: 'win-x64',
'linux-arm64', 'osx-x64'.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dotnetdiff.core.exceptions import (
    RuntimeIdentifierFormatError,
    UnsupportedPlatformError,
)
from dotnetdiff.core.platform import PlatformInfo, detect_platform


class Platform(Enum):
    """Operating systems supported as hosts and targets."""

    WINDOWS = "win"
    LINUX = "linux"
    MACOS = "osx"


class Architecture(Enum):
    """CPU architectures supported as hosts and targets."""

    X86 = "x86"
    X64 = "x64"
    ARM = "arm"
    ARM64 = "arm64"


_PLATFORMS_BY_HOST_OS = {
    "windows": Platform.WINDOWS,
    "linux": Platform.LINUX,
    "macos": Platform.MACOS,
}


@dataclass(frozen=True)
class RuntimeIdentifier:
    """
    A platform/architecture pair.

    Example:
        >>> rid = RuntimeIdentifier.parse("linux-x64")
        >>> rid.platform, rid.architecture
        (<Platform.LINUX: 'linux'>, <Architecture.X64: 'x64'>)
        >>> str(rid)
        'linux-x64'
    """

    platform: Platform
    architecture: Architecture

    @classmethod
    def parse(cls, value: str) -> "RuntimeIdentifier":
        """
        Parse a runtime identifier string (case-insensitive).

        Raises:
            RuntimeIdentifierFormatError: If value is not '<os>-<arch>'
            UnsupportedPlatformError: If the OS or architecture is unknown
        """
        parts = value.split("-")
        if len(parts) != 2 or not all(parts):
            raise RuntimeIdentifierFormatError(
                f"Runtime identifier must consist of two parts, '<os>-<arch>', got '{value}'"
            )

        os_token, arch_token = (part.lower() for part in parts)

        try:
            platform = Platform(os_token)
        except ValueError:
            raise UnsupportedPlatformError(f"Unsupported OS: '{parts[0]}'") from None

        try:
            architecture = Architecture(arch_token)
        except ValueError:
            raise UnsupportedPlatformError(
                f"Unsupported CPU architecture: '{parts[1]}'"
            ) from None

        return cls(platform, architecture)

    @classmethod
    def host(cls, info: Optional[PlatformInfo] = None) -> "RuntimeIdentifier":
        """Identifier of the machine dotnet-diff is running on."""
        info = info or detect_platform()
        return cls(_PLATFORMS_BY_HOST_OS[info.os], Architecture(info.arch))

    def __str__(self) -> str:
        return f"{self.platform.value}-{self.architecture.value}"


def executable_file_name(base_name: str, platform: Platform) -> str:
    """File name of an executable on the given platform."""
    return f"{base_name}.exe" if platform is Platform.WINDOWS else base_name


def library_file_name(base_name: str, platform: Platform) -> str:
    """File name of a native shared library on the given platform."""
    if platform is Platform.WINDOWS:
        return f"{base_name}.dll"
    if platform is Platform.LINUX:
        return f"lib{base_name}.so"
    return f"lib{base_name}.dylib"


# The rolling build never produces a Jit targeting these.
_UNPUBLISHED_JIT_TARGETS = frozenset(
    {
        (Platform.MACOS, Architecture.X86),
        (Platform.MACOS, Architecture.ARM),
        (Platform.WINDOWS, Architecture.ARM),
    }
)

_CROSS_JIT_OS_NAMES = {
    Platform.WINDOWS: "windows",
    Platform.LINUX: "unix",
    Platform.MACOS: "osx",
}


def jit_file_name(target: RuntimeIdentifier, host: RuntimeIdentifier) -> str:
    """
    File name of the Jit that compiles for target and runs on host.

    The native Jit is plain 'clrjit'; cross-targeting Jits are suffixed with
    the target OS family and architecture. Either way the name is spelled as
    a host library.

    Example:
        >>> linux = RuntimeIdentifier.parse("linux-x64")
        >>> jit_file_name(RuntimeIdentifier.parse("win-arm64"), linux)
        'libclrjit_windows_arm64.so'
    """
    base_name = "clrjit"
    if target != host:
        os_name = _CROSS_JIT_OS_NAMES[target.platform]
        base_name = f"{base_name}_{os_name}_{target.architecture.value}"
    return library_file_name(base_name, host.platform)


def jit_is_published(target: RuntimeIdentifier) -> bool:
    """Whether the rolling build publishes a Jit for target."""
    return (target.platform, target.architecture) not in _UNPUBLISHED_JIT_TARGETS
