"""
Directory structure management for dotnet-diff.

This module resolves the per-user application directory and creates the
directories that installs are written to.

Directory Structure:
    Application directory (~/.config/dotnet-diff-<version>/ or
    %APPDATA%\\dotnet-diff-<version>\\):
        - SDKs/              : Installed artifacts, one folder per framework version
        - dotnet-diff.json   : Installation ledger
        - config.yaml        : Optional user settings
"""

import os
from pathlib import Path

from dotnetdiff import __version__
from dotnetdiff.core.exceptions import UserError

APP_ID = f"dotnet-diff-{__version__}"
LEDGER_FILE_NAME = "dotnet-diff.json"
CONFIG_FILE_NAME = "config.yaml"
SDKS_DIR_NAME = "SDKs"


class DirectoryError(UserError):
    """Raised when the application directory cannot be resolved or created."""

    pass


def get_app_dir() -> Path:
    """
    Get the platform-specific application directory path.

    The DOTNET_DIFF_HOME environment variable overrides the default.

    Returns:
        Path: The application directory path.
            - Windows: %APPDATA%\\dotnet-diff-<version>
            - Linux/macOS: ~/.config/dotnet-diff-<version>

    Example:
        >>> app_dir = get_app_dir()
        >>> print(app_dir)
        /home/user/.config/dotnet-diff-0.1.0  # on Linux
    """
    override = os.environ.get("DOTNET_DIFF_HOME")
    if override:
        return Path(override)

    if os.name == "nt":  # Windows
        app_data = os.environ.get("APPDATA")
        if not app_data:
            raise DirectoryError(
                "APPDATA environment variable is not set. "
                "Cannot determine the dotnet-diff application directory."
            )
        return Path(app_data) / APP_ID
    else:  # Linux/macOS
        config_home = os.environ.get("XDG_CONFIG_HOME")
        base = Path(config_home) if config_home else Path.home() / ".config"
        return base / APP_ID


def get_ledger_path(app_dir: Path) -> Path:
    """Path of the installation ledger inside the application directory."""
    return app_dir / LEDGER_FILE_NAME


def get_config_path(app_dir: Path) -> Path:
    """Path of the optional settings file inside the application directory."""
    return app_dir / CONFIG_FILE_NAME


def verify_directory_writable(path: Path) -> bool:
    """
    Verify that a directory exists and is writable.

    Args:
        path: Directory path to verify.

    Returns:
        bool: True if directory exists and is writable, False otherwise.
    """
    if not path.is_dir():
        return False

    try:
        test_file = path / ".write_test"
        test_file.touch()
        test_file.unlink()
        return True
    except OSError:
        return False


def ensure_app_structure(app_dir: Path) -> Path:
    """
    Create the application directory structure if it doesn't exist.

    Creates:
        - Application directory root
        - SDKs/ subdirectory

    Args:
        app_dir: Application directory to set up.

    Returns:
        Path: The application directory path.

    Raises:
        DirectoryError: If creation fails or the directory is not writable.
    """
    try:
        (app_dir / SDKS_DIR_NAME).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(
            f"Failed to create application directory at {app_dir}: {e}"
        ) from e

    if not verify_directory_writable(app_dir):
        raise DirectoryError(
            f"Application directory at {app_dir} is not writable. "
            "Please check directory permissions."
        )

    return app_dir
