"""
Core functionality for dotnet-diff.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    DotnetDiffError,
    UserError,
    DeveloperError,
    VersionFormatError,
    UnsupportedVersionError,
    RuntimeIdentifierFormatError,
    UnsupportedPlatformError,
    UnsupportedTargetError,
    ConfigurationError,
    RemoteQueryError,
    DownloadError,
    PackageDownloadError,
    ReleaseIndexError,
    CompatibleBuildNotFoundError,
    MissingArtifactError,
    LedgerWriteError,
    InvalidArtifactError,
    dev_assert,
)

from .config import Settings, load_settings

from .directory import (
    get_app_dir,
    get_ledger_path,
    get_config_path,
    ensure_app_structure,
    DirectoryError,
)

from .platform import PlatformInfo, detect_platform, clear_platform_cache

__all__ = [
    "DotnetDiffError",
    "UserError",
    "DeveloperError",
    "VersionFormatError",
    "UnsupportedVersionError",
    "RuntimeIdentifierFormatError",
    "UnsupportedPlatformError",
    "UnsupportedTargetError",
    "ConfigurationError",
    "RemoteQueryError",
    "DownloadError",
    "PackageDownloadError",
    "ReleaseIndexError",
    "CompatibleBuildNotFoundError",
    "MissingArtifactError",
    "LedgerWriteError",
    "InvalidArtifactError",
    "dev_assert",
    "Settings",
    "load_settings",
    "get_app_dir",
    "get_ledger_path",
    "get_config_path",
    "ensure_app_structure",
    "DirectoryError",
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
]
