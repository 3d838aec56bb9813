"""
Shared utilities for CLI commands.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotnetdiff.core.config import Settings
from dotnetdiff.core.download import DownloadProgress
from dotnetdiff.sdk.ledger import InstallationLedger
from dotnetdiff.sdk.releases import resolve_latest_version
from dotnetdiff.sdk.runtime_identifier import RuntimeIdentifier
from dotnetdiff.sdk.version import FrameworkVersion

logger = logging.getLogger(__name__)

LATEST = "latest"


@dataclass
class CommandContext:
    """State shared by every command for the duration of one invocation."""

    app_dir: Path
    settings: Settings
    ledger: InstallationLedger


def resolve_version(framework: str, settings: Settings) -> FrameworkVersion:
    """
    Turn the value of --framework into a version.

    Args:
        framework: A full version string or 'latest'
        settings: Effective settings (for the request timeout)

    Raises:
        VersionFormatError: If framework is not a valid version
    """
    if framework.lower() == LATEST:
        version = resolve_latest_version(settings.request_timeout)
        logger.info(f"Latest version is {version.raw}")
        return version
    return FrameworkVersion.parse(framework)


def resolve_runtimes(runtimes: Optional[List[str]]) -> List[RuntimeIdentifier]:
    """Parse the values of --runtime, defaulting to the host."""
    if not runtimes:
        return [RuntimeIdentifier.host()]
    return [RuntimeIdentifier.parse(rid) for rid in runtimes]


def log_progress(progress: DownloadProgress) -> None:
    logger.debug(f"  {progress}")


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)
