"""
Commit history queries against the GitHub REST API.

Only the first page of results is requested. Unauthenticated clients are
limited to 60 requests per hour, so callers are expected to query lazily and
as little as possible. Setting GITHUB_TOKEN raises the limit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests
from requests.exceptions import RequestException

from dotnetdiff import __version__
from dotnetdiff.core.exceptions import RemoteQueryError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
RUNTIME_REPOSITORY = "dotnet/runtime"


@dataclass(frozen=True)
class CommitRecord:
    """
    A commit and its committer date.

    Attributes:
        hash: Full commit SHA
        date: Timezone-aware committer date
    """

    hash: str
    date: datetime


def format_since(since: datetime) -> str:
    """
    Format a date for the 'since' query parameter (UTC, second precision).

    Example:
        >>> format_since(datetime(2021, 4, 5, 12, 0, tzinfo=timezone.utc))
        '2021-04-05T12:00:00Z'
    """
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_commit_date(value: str) -> datetime:
    """Parse an ISO 8601 date as returned by the API into an aware datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    date = datetime.fromisoformat(value)
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date


class CommitHistory:
    """
    Client for the commit list endpoint of a GitHub repository.

    Args:
        repository: 'owner/name' of the repository to query
        timeout: Request timeout in seconds
        per_page: Number of commits requested per query
        token: Optional GitHub token for authenticated requests

    Example:
        >>> history = CommitHistory(token=os.environ.get("GITHUB_TOKEN"))
        >>> commits = history.get_commits("main", "src/coreclr/jit")
        >>> commits[0].hash
        '0b7e9e5...'
    """

    def __init__(
        self,
        repository: str = RUNTIME_REPOSITORY,
        timeout: float = 30,
        per_page: int = 30,
        token: Optional[str] = None,
    ):
        self.repository = repository
        self.timeout = timeout
        self.per_page = per_page
        self.token = token

    @property
    def commits_url(self) -> str:
        return f"{GITHUB_API_URL}/repos/{self.repository}/commits"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"dotnet-diff/{__version__}",
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def get_commits(
        self, ref: str, path: str, since: Optional[datetime] = None
    ) -> List[CommitRecord]:
        """
        List commits reachable from ref that touched path.

        Commits are returned the way the API orders them: most recent first.
        An empty list is a valid answer.

        Args:
            ref: Commit SHA or branch name to list history from
            path: Repository path the commits must touch
            since: Only list commits at or after this date

        Returns:
            Commit records, most recent first

        Raises:
            RemoteQueryError: If the request fails, the server returns an error
                status or the response is not the expected JSON
        """
        params = {"sha": ref, "path": path, "per_page": str(self.per_page)}
        if since is not None:
            params["since"] = format_since(since)

        url = self.commits_url
        logger.debug(f"GET {url} {params}")

        try:
            response = requests.get(
                url, params=params, headers=self._headers(), timeout=self.timeout
            )
        except RequestException as e:
            raise RemoteQueryError(f"Failed to query commits of {path}: {e}") from e

        if not response.ok:
            raise RemoteQueryError(
                f"Failed to retrieve the commits of {path} from {ref}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteQueryError(
                f"Unexpected response for the commits of {path}: {e}"
            ) from e

        if not isinstance(payload, list):
            raise RemoteQueryError(
                f"Unexpected response for the commits of {path}: expected a list"
            )

        commits = [_parse_commit(entry) for entry in payload]
        logger.debug(f"Retrieved {len(commits)} commits of {path} from {ref}")
        return commits


def _parse_commit(entry) -> CommitRecord:
    try:
        sha = entry["sha"]
        date = entry["commit"]["committer"]["date"]
        if not isinstance(sha, str) or not isinstance(date, str):
            raise TypeError("sha and date must be strings")
        return CommitRecord(hash=sha, date=parse_commit_date(date))
    except (KeyError, TypeError, ValueError) as e:
        raise RemoteQueryError(f"Unexpected JSON in commit entry {entry!r}: {e}") from e
