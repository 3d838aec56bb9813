"""
Network download manager with progress tracking.

This module provides the HTTP primitives installs are built from:
- Streaming HTTP/HTTPS downloads with TLS verification
- Progress reporting (bytes, percentage, speed, ETA)
- A "not found is data" variant used to search sparse build stores
- Explicit timeouts on every request

Requests are never retried here. A failed download fails the install, and the
caller decides whether to run the whole install again.
"""

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

import requests
from requests.exceptions import RequestException

from dotnetdiff.core.exceptions import DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192

# Statuses meaning the server does not have the file
MISSING_STATUSES = (404, 410)


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


ProgressCallback = Callable[[DownloadProgress], None]


def try_download(
    url: str,
    destination: Path,
    progress_callback: Optional[ProgressCallback] = None,
    timeout: float = 30,
    headers: Optional[Dict[str, str]] = None,
) -> bool:
    """
    Download a URL to destination if the server has it.

    A non-success HTTP status is a normal negative result: nothing is written
    and False is returned. Only transport failures raise.

    Args:
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback for progress updates
        timeout: Connect/read timeout in seconds
        headers: Optional extra request headers

    Returns:
        True if the file was downloaded, False if the server did not have it

    Raises:
        DownloadError: On connection failures, timeouts or interrupted transfers
    """
    status_code = _fetch(url, Path(destination), progress_callback, timeout, headers)
    if status_code in MISSING_STATUSES:
        logger.debug(f"Not found: {url}")
        return False
    if status_code is not None:
        logger.warning(f"Could not fetch {url}, server returned {status_code}")
        return False
    return True


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[ProgressCallback] = None,
    timeout: float = 30,
    headers: Optional[Dict[str, str]] = None,
) -> Path:
    """
    Download a URL to destination, failing if the server does not have it.

    Args:
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback for progress updates
        timeout: Connect/read timeout in seconds
        headers: Optional extra request headers

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the server returns an error status or the transfer fails

    Example:
        >>> def on_progress(progress):
        ...     print(f"Downloaded {progress.percentage:.1f}%")
        >>>
        >>> download_file("https://example.com/package.nupkg", Path("package.nupkg"),
        ...               progress_callback=on_progress)
    """
    destination = Path(destination)
    status_code = _fetch(url, destination, progress_callback, timeout, headers)
    if status_code is not None:
        raise DownloadError(
            f"Failed to download {url}, server returned: {status_code}",
            status_code=status_code,
        )
    return destination


def _fetch(
    url: str,
    destination: Path,
    progress_callback: Optional[ProgressCallback],
    timeout: float,
    headers: Optional[Dict[str, str]],
) -> Optional[int]:
    """
    Stream url into destination.

    The body goes to a temporary file next to the destination and is renamed
    into place once complete, so the destination never holds a partial file.

    Returns:
        None on success, or the HTTP status code of an unsuccessful response
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"GET {url}")

    try:
        response = requests.get(
            url,
            headers=headers or {},
            stream=True,
            timeout=timeout,
            allow_redirects=True,
        )
    except RequestException as e:
        raise DownloadError(f"Request to {url} failed: {e}") from e

    with response:
        if not response.ok:
            return response.status_code

        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".part"
        )
        temp_path = Path(temp_path_str)

        try:
            with os.fdopen(temp_fd, "wb") as f:
                _stream_to_file(response, f, progress_callback)
            temp_path.replace(destination)
        except RequestException as e:
            temp_path.unlink(missing_ok=True)
            raise DownloadError(f"Download of {url} was interrupted: {e}") from e
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

    logger.debug(f"Download complete: {destination}")
    return None


def _stream_to_file(
    response: requests.Response,
    f,
    progress_callback: Optional[ProgressCallback],
) -> int:
    """Write the response body to an open file, reporting progress."""
    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        if not chunk:
            continue

        f.write(chunk)
        downloaded += len(chunk)

        # Report progress (max once per 0.5 seconds)
        current_time = time.time()
        if progress_callback and (
            current_time - last_progress_time >= 0.5 or downloaded == total_size
        ):
            progress_callback(
                _make_progress(downloaded, total_size, current_time - start_time)
            )
            last_progress_time = current_time

    return downloaded


def _make_progress(downloaded: int, total_size: int, elapsed: float) -> DownloadProgress:
    speed = downloaded / elapsed if elapsed > 0 else 0
    remaining = total_size - downloaded if total_size > 0 else 0
    eta = remaining / speed if speed > 0 else 0

    return DownloadProgress(
        bytes_downloaded=downloaded,
        total_bytes=total_size if total_size > 0 else downloaded,
        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
        speed_bps=speed,
        eta_seconds=eta,
    )


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Args:
        progress: Download progress information

    Returns:
        Formatted progress string

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        # Unknown total size
        return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"
