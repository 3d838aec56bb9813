"""
Access to the Jit rolling build store.

The store keeps checked Jit builds for a subset of dotnet/runtime commits,
one build leg per host OS and architecture:

    https://clrjit2.blob.core.windows.net/jitrollingbuild/builds/<commit>/<os>/<arch>/Checked/<jit file>

Most commits have no build, so a missing file is a normal result.
"""

import logging
from pathlib import Path
from typing import Optional

from dotnetdiff.core.download import ProgressCallback, try_download
from dotnetdiff.core.exceptions import DownloadError, RemoteQueryError
from dotnetdiff.sdk.runtime_identifier import Platform, RuntimeIdentifier

logger = logging.getLogger(__name__)

ROLLING_BUILD_URL = "https://clrjit2.blob.core.windows.net/jitrollingbuild/builds"

_BUILD_LEG_OS_NAMES = {
    Platform.WINDOWS: "windows",
    Platform.LINUX: "Linux",
    Platform.MACOS: "OSX",
}


class RollingBuildStore:
    """
    Looks up and downloads Jits built for the given host.

    Args:
        host: Runtime identifier of the build leg (the machine the Jit runs on)
        timeout: Request timeout in seconds
        progress_callback: Optional callback for download progress
    """

    def __init__(
        self,
        host: RuntimeIdentifier,
        timeout: float = 30,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.host = host
        self.timeout = timeout
        self.progress_callback = progress_callback

    def url_for(self, commit: str, jit_name: str) -> str:
        """
        URL of a Jit in the store.

        Example:
            >>> store = RollingBuildStore(RuntimeIdentifier.parse("linux-x64"))
            >>> store.url_for("abc", "libclrjit.so")
            'https://clrjit2.blob.core.windows.net/jitrollingbuild/builds/abc/Linux/x64/Checked/libclrjit.so'
        """
        os_name = _BUILD_LEG_OS_NAMES[self.host.platform]
        arch = self.host.architecture.value
        return f"{ROLLING_BUILD_URL}/{commit}/{os_name}/{arch}/Checked/{jit_name}"

    def try_download(self, commit: str, jit_name: str, destination: Path) -> bool:
        """
        Download the Jit built from commit, if the store has one.

        Args:
            commit: dotnet/runtime commit SHA
            jit_name: Jit file name
            destination: Path to write the Jit to

        Returns:
            True if the Jit was downloaded, False if the store has no such build

        Raises:
            RemoteQueryError: On transport failures
        """
        url = self.url_for(commit, jit_name)

        try:
            found = try_download(
                url,
                Path(destination),
                progress_callback=self.progress_callback,
                timeout=self.timeout,
            )
        except DownloadError as e:
            raise RemoteQueryError(str(e)) from e

        if found:
            logger.info(f"Downloaded {jit_name} built from {commit}")
        else:
            logger.debug(f"Jit not found for commit '{commit}'")
        return found
