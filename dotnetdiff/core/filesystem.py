"""
Cross-platform file system utilities for dotnet-diff.

This module provides the file operations installs are built from:
- Package extraction (.zip and .nupkg, which is a zip archive)
- Safe file operations (atomic writes, guarded deletion, directory moves)
- Temporary directory management
"""

import os
import shutil
import stat
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional, Union

from dotnetdiff.core.exceptions import UserError

# Platform detection
IS_WINDOWS = os.name == "nt"


# ============================================================================
# Error Handling
# ============================================================================


class FilesystemError(UserError):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Args:
        path: Member path from archive
        destination: Extraction destination

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Extract an archive to a destination directory.

    Validates all member paths before writing anything.

    Supported formats:
    - .zip
    - .nupkg

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to
        progress_callback: Optional callback(current, total) for progress

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        ArchiveExtractionError: If extraction fails
        InsecureArchiveError: If archive contains malicious paths

    Example:
        >>> extract_archive('runtime.nupkg', '/tmp/runtime')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    archive_name = archive_path.name.lower()
    if not archive_name.endswith((".zip", ".nupkg")):
        raise UnsupportedArchiveFormat(
            f"Unsupported archive format: {archive_path.suffix}. "
            "Supported: .zip, .nupkg"
        )

    destination.mkdir(parents=True, exist_ok=True)

    try:
        _extract_zip(archive_path, destination, progress_callback)
    except InsecureArchiveError:
        raise
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(
    archive_path: Path,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.namelist()
        total = len(members)

        for member in members:
            _validate_archive_path(member, destination)

        for i, member in enumerate(members):
            zf.extract(member, destination)
            if progress_callback:
                progress_callback(i + 1, total)


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Example:
        >>> atomic_write('dotnet-diff.json', '{"sdks": {}}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/tmp/build', require_prefix='/tmp')
        >>> safe_rmtree('/usr/bin', require_prefix='/home')  # ValueError
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    def handle_remove_readonly(func, failed_path, exc_info):
        """Clear the read-only bit and retry once."""
        if not os.access(failed_path, os.W_OK):
            os.chmod(failed_path, stat.S_IWRITE | stat.S_IREAD)
            func(failed_path)
        else:
            raise exc_info[1]

    try:
        shutil.rmtree(path, onerror=handle_remove_readonly)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def recreate_directory(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> Path:
    """
    Delete a directory (if present) and create it again empty.

    Args:
        path: Directory to recreate
        require_prefix: If specified, path must be under this directory

    Returns:
        The (now empty) directory path
    """
    safe_rmtree(path, require_prefix=require_prefix)
    return ensure_directory(path)


def move_directory(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Move a directory to a destination that must not exist yet.

    Works across filesystems (falls back to copy + delete).

    Args:
        source: Directory to move
        destination: New location

    Returns:
        Destination path

    Raises:
        FilesystemError: If the source is missing or the destination exists
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise FilesystemError(f"Source directory does not exist: {source}")

    if destination.exists():
        raise FilesystemError(f"Destination already exists: {destination}")

    destination.parent.mkdir(parents=True, exist_ok=True)

    try:
        shutil.move(str(source), str(destination))
    except OSError as e:
        raise FilesystemError(
            f"Failed to move '{source}' to '{destination}': {e}"
        ) from e

    return destination


def make_executable(path: Union[str, Path]) -> None:
    """Add the execute bits to a file. No-op on Windows."""
    if IS_WINDOWS:
        return

    path = Path(path)
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists (idempotent).

    Args:
        path: Directory path

    Returns:
        Path object

    Example:
        >>> ensure_directory('/tmp/dotnet-diff/SDKs')
        PosixPath('/tmp/dotnet-diff/SDKs')
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


# ============================================================================
# Temporary File/Directory Management
# ============================================================================


@contextmanager
def temporary_directory(prefix: str = "dotnet-diff-", cleanup: bool = True):
    """
    Context manager for temporary directory with automatic cleanup.

    Args:
        prefix: Prefix for temp directory name
        cleanup: If True, remove directory on exit

    Yields:
        Path to temporary directory

    Example:
        >>> with temporary_directory() as tmp:
        ...     (tmp / 'file.txt').write_text('test')
    """
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix))

    try:
        yield temp_dir
    finally:
        if cleanup and temp_dir.exists():
            safe_rmtree(temp_dir)


__all__ = [
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "is_relative_to",
    "extract_archive",
    "atomic_write",
    "safe_rmtree",
    "recreate_directory",
    "move_directory",
    "make_executable",
    "ensure_directory",
    "temporary_directory",
]
