"""
.NET release information.

The release index published in dotnet/core tells which release channel is in
preview, which are supported and how far the previews have gone. It is used
to guess which dotnet/runtime branch a version was built from, since there is
no API that maps a commit to its branch.

The latest runtime version comes from the dependency manifest of
dotnet/installer, which pins the runtime build the newest SDK ships with.
"""

import functools
import logging
import xml.etree.ElementTree as ElementTree
from dataclasses import dataclass, field
from typing import List, Optional

import requests
from requests.exceptions import RequestException

from dotnetdiff.core.exceptions import ReleaseIndexError, RemoteQueryError
from dotnetdiff.sdk.version import PREVIEW_SPECIFIER, FrameworkVersion

logger = logging.getLogger(__name__)

RELEASES_INDEX_URL = (
    "https://raw.githubusercontent.com/dotnet/core/main/release-notes/releases-index.json"
)
VERSION_DETAILS_URL = (
    "https://raw.githubusercontent.com/dotnet/installer/main/eng/Version.Details.xml"
)
LATEST_RUNTIME_DEPENDENCY = "Microsoft.NETCore.App.Runtime.win-x64"
MAIN_BRANCH = "main"

_SUPPORTED_PHASES = ("sts", "lts", "current")


@dataclass(frozen=True)
class DotnetRelease:
    """One release channel of the index."""

    short_version: str
    support_phase: str
    latest_runtime_version: str


@dataclass(frozen=True)
class DotnetReleases:
    """
    Summary of the release index.

    Attributes:
        latest_preview_number: Number of the latest published preview of the
            next release, None if no preview has been published
        next_release: Channel currently in preview, if any
        current_release: Most recent supported channel
        supported_releases: Supported channels, most recent first
    """

    latest_preview_number: Optional[int]
    next_release: Optional[DotnetRelease]
    current_release: DotnetRelease
    supported_releases: List[DotnetRelease] = field(default_factory=list)


def _get(url: str, timeout: float) -> requests.Response:
    logger.debug(f"GET {url}")
    try:
        response = requests.get(url, timeout=timeout)
    except RequestException as e:
        raise RemoteQueryError(f"Request to {url} failed: {e}") from e

    if not response.ok:
        raise RemoteQueryError(
            f"Failed to retrieve {url}", status_code=response.status_code
        )
    return response


@functools.lru_cache(maxsize=None)
def fetch_releases(timeout: float = 30) -> DotnetReleases:
    """
    Download and summarize the release index.

    The result is cached for the lifetime of the process.

    Raises:
        RemoteQueryError: If the index cannot be downloaded
        ReleaseIndexError: If the index does not have the expected shape
    """
    response = _get(RELEASES_INDEX_URL, timeout)

    try:
        payload = response.json()
    except ValueError as e:
        raise ReleaseIndexError(f"releases-index.json is not valid JSON: {e}") from e

    return parse_releases(payload)


def parse_releases(payload) -> DotnetReleases:
    """
    Summarize a parsed releases-index.json document.

    Raises:
        ReleaseIndexError: If required fields are missing or no release is supported
    """
    if not isinstance(payload, dict) or not isinstance(
        payload.get("releases-index"), list
    ):
        raise ReleaseIndexError("'releases-index' is not present in the JSON for releases")

    latest_preview_number = None
    next_release = None
    supported = []

    for entry in payload["releases-index"]:
        release = DotnetRelease(
            short_version=_required(entry, "channel-version"),
            support_phase=_required(entry, "support-phase"),
            latest_runtime_version=_required(entry, "latest-runtime"),
        )
        latest_release = _required(entry, "latest-release")

        if release.support_phase == "preview":
            latest_preview_number = _preview_number(latest_release)
            next_release = release
        elif release.support_phase in _SUPPORTED_PHASES:
            supported.append(release)

    if not supported:
        raise ReleaseIndexError("Could not find a current release in the JSON for releases")

    return DotnetReleases(
        latest_preview_number=latest_preview_number,
        next_release=next_release,
        current_release=supported[0],
        supported_releases=supported,
    )


def _required(entry, key: str) -> str:
    value = entry.get(key) if isinstance(entry, dict) else None
    if not isinstance(value, str):
        raise ReleaseIndexError(f"'{key}' is not present in the JSON for releases")
    return value


def _preview_number(release_version: str) -> Optional[int]:
    # e.g. '6.0.0-preview.3' or '6.0.0-preview.3.21201.4'
    index = release_version.find(PREVIEW_SPECIFIER)
    if index < 0:
        return None
    number = release_version[index + len(PREVIEW_SPECIFIER):].split(".")[0]
    try:
        return int(number)
    except ValueError:
        raise ReleaseIndexError(
            f"Unrecognized preview version '{release_version}' in the JSON for releases"
        ) from None


def branch_for(version: FrameworkVersion, releases: DotnetReleases) -> str:
    """
    Guess the dotnet/runtime branch a version was built from.

    - A preview of the upcoming release newer than any published preview is
      still being built from main.
    - An already published preview of the upcoming release comes from its
      preview branch.
    - Everything else is assumed to be on the release branch.

    Example:
        >>> branch_for(FrameworkVersion.parse("6.0.0-preview.4.21205.3+7b9a..."), releases)
        'main'
    """
    next_release = releases.next_release
    if (
        version.is_preview
        and next_release is not None
        and version.release == next_release.short_version
    ):
        latest = releases.latest_preview_number
        if latest is None or version.preview_number > latest:
            return MAIN_BRANCH
        return f"release/{version.release}-preview.{version.preview_number}"

    return f"release/{version.release}"


def resolve_latest_version(timeout: float = 30) -> FrameworkVersion:
    """
    Look up the runtime version the latest SDK is built with.

    Raises:
        RemoteQueryError: If the manifest cannot be downloaded
        ReleaseIndexError: If the manifest does not name the runtime dependency
        VersionFormatError: If the pinned version is not a valid version
    """
    response = _get(VERSION_DETAILS_URL, timeout)
    return parse_version_details(response.text)


def parse_version_details(document: str) -> FrameworkVersion:
    """Extract the pinned runtime version from a Version.Details.xml document."""
    try:
        root = ElementTree.fromstring(document)
    except ElementTree.ParseError as e:
        raise ReleaseIndexError(f"Version.Details.xml is not valid XML: {e}") from e

    for dependency in root.iter("Dependency"):
        if dependency.get("Name") != LATEST_RUNTIME_DEPENDENCY:
            continue

        version = dependency.get("Version")
        sha = dependency.findtext("Sha")
        if not version or not sha:
            break

        logger.debug(f"Latest {LATEST_RUNTIME_DEPENDENCY} is {version}+{sha}")
        return FrameworkVersion.parse(f"{version}+{sha.strip()}")

    raise ReleaseIndexError(
        f"Could not find the version of {LATEST_RUNTIME_DEPENDENCY} in Version.Details.xml"
    )
