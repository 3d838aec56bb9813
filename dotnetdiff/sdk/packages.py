"""
Package acquisition from the public .NET NuGet feeds.

Each major .NET version has its own feed on dnceng's Azure DevOps
(`dotnet6`, `dotnet7`, ...). Packages are downloaded into a temporary
directory and extracted there. Callers move whatever they need out of the
extracted tree before the context exits.

Example:
    >>> feed = PackageFeed(timeout=300)
    >>> with feed.acquire("Microsoft.NETCore.App.Crossgen2.linux-x64",
    ...                   "6.0.0-preview.4.21205.3", 6) as package_dir:
    ...     move_directory(package_dir / "tools", crossgen2_dir)
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from dotnetdiff.core.download import ProgressCallback, download_file
from dotnetdiff.core.exceptions import DownloadError, PackageDownloadError
from dotnetdiff.core.filesystem import extract_archive, temporary_directory

logger = logging.getLogger(__name__)

FEED_URL = "https://pkgs.dev.azure.com/dnceng/public/_apis/packaging/feeds"
FEED_API_VERSION = "6.0-preview.1"


def package_url(package_name: str, package_version: str, feed_major: int) -> str:
    """
    URL of a package's content on the feed of a .NET major version.

    Example:
        >>> package_url("Microsoft.NETCore.App.Runtime.win-x64", "6.0.0", 6)
        'https://pkgs.dev.azure.com/dnceng/public/_apis/packaging/feeds/dotnet6/nuget/packages/Microsoft.NETCore.App.Runtime.win-x64/versions/6.0.0/content?api-version=6.0-preview.1'
    """
    return (
        f"{FEED_URL}/dotnet{feed_major}/nuget/packages/{package_name}"
        f"/versions/{package_version}/content?api-version={FEED_API_VERSION}"
    )


class PackageFeed:
    """
    Downloads and extracts packages from the .NET feeds.

    Args:
        timeout: Download timeout in seconds
        keep_temp_files: Leave the temporary download directory behind
        progress_callback: Optional callback for download progress
    """

    def __init__(
        self,
        timeout: float = 300,
        keep_temp_files: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.timeout = timeout
        self.keep_temp_files = keep_temp_files
        self.progress_callback = progress_callback

    @contextmanager
    def acquire(
        self, package_name: str, package_version: str, feed_major: int
    ) -> Iterator[Path]:
        """
        Download and extract a package.

        Args:
            package_name: NuGet package id
            package_version: Package version
            feed_major: .NET major version whose feed hosts the package

        Yields:
            Directory holding the extracted package contents

        Raises:
            PackageDownloadError: If the package cannot be downloaded
            ArchiveExtractionError: If the package cannot be extracted
        """
        url = package_url(package_name, package_version, feed_major)

        with temporary_directory(
            prefix=f"dotnet-diff-{package_name}-", cleanup=not self.keep_temp_files
        ) as temp_dir:
            if self.keep_temp_files:
                logger.info(f"Keeping temporary files in {temp_dir}")

            archive = temp_dir / f"{package_name}.{package_version}.nupkg"
            logger.info(f"GET {url}")

            try:
                download_file(
                    url,
                    archive,
                    progress_callback=self.progress_callback,
                    timeout=self.timeout,
                )
            except DownloadError as e:
                raise PackageDownloadError(
                    f"Failed to download {package_name}, version {package_version}: {e}",
                    status_code=e.status_code,
                ) from e

            logger.info(f"Downloaded {package_name}, version {package_version}")

            extract_dir = temp_dir / "extract"
            extract_archive(archive, extract_dir)
            logger.debug(f"Extracted {archive.name} to {extract_dir}")

            yield extract_dir
