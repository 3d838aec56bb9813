"""
Search for a prebuilt Jit compatible with a runtime version.

Only a Jit whose JIT-EE interface matches the rest of the runtime can be used
with it. The interface identity is a GUID in jiteeversionguid.h, so every
build between two changes of that file is interchangeable. The rolling build
store keeps builds for some commits only, which means the search looks for
the commit closest to the version's own that both has a build and lies in
the same interface range.

The search runs in two passes:

1. Downward: commits that touched the Jit at or before the version's commit,
   newest first, down to the last interface change (inclusive).
2. Upward: commits that touched the Jit on the version's branch after the
   version's commit, oldest first, up to the next interface change
   (inclusive).

Each pass tries at most `depth` commits. GitHub queries are issued lazily,
so a hit in the first pass costs no queries for the second. Unauthenticated
API clients get 60 requests an hour.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from dotnetdiff.core.exceptions import CompatibleBuildNotFoundError, dev_assert
from dotnetdiff.sdk.github import CommitHistory, CommitRecord
from dotnetdiff.sdk.rolling_build import RollingBuildStore
from dotnetdiff.sdk.version import FrameworkVersion

logger = logging.getLogger(__name__)

# Newer layouts first; older branches still have coreclr sources under src/.
INTERFACE_GUID_PATHS = (
    "src/coreclr/inc/jiteeversionguid.h",
    "src/coreclr/src/inc/jiteeversionguid.h",
)
JIT_SOURCE_PATHS = (
    "src/coreclr/jit",
    "src/coreclr/src/jit",
)

DEFAULT_SEARCH_DEPTH = 10


@dataclass(frozen=True)
class JitSearchResult:
    """
    Outcome of a successful search.

    Attributes:
        commit: Commit the downloaded Jit was built from
        path: Where the Jit was written
        attempts: Number of build store lookups made, including the hit
    """

    commit: str
    path: Path
    attempts: int


class CompatibleJitSearch:
    """
    Bounded search for a Jit build compatible with a runtime version.

    Args:
        version: Runtime version the Jit must be compatible with
        jit_name: File name of the Jit in the build store
        history: Commit history client for dotnet/runtime
        build_store: Rolling build store to search
        branch: Returns the branch the version was built from. Only called
            when the upward pass runs.
        depth: Maximum number of commits tried per pass
        prefer_later_commits: Run the upward pass first

    Example:
        >>> search = CompatibleJitSearch(version, "libclrjit.so", history, store,
        ...                              branch=lambda: "main")
        >>> result = search.run(Path("Jit/libclrjit.so"))
        >>> result.commit
        '7b9ab0e196c78968bac455bf29a9845a85e4a022'
    """

    def __init__(
        self,
        version: FrameworkVersion,
        jit_name: str,
        history: CommitHistory,
        build_store: RollingBuildStore,
        branch: Callable[[], str],
        depth: int = DEFAULT_SEARCH_DEPTH,
        prefer_later_commits: bool = False,
    ):
        dev_assert(depth >= 1, "search depth must be positive")

        self.version = version
        self.jit_name = jit_name
        self.history = history
        self.build_store = build_store
        self.branch = branch
        self.depth = depth
        self.prefer_later_commits = prefer_later_commits

        self._queries: Dict[Tuple[str, Tuple[str, ...], Optional[datetime]], List[CommitRecord]] = {}
        self._tried: List[str] = []
        self._branch_name: Optional[str] = None

    @property
    def tried_commits(self) -> Tuple[str, ...]:
        """Commits tried so far, in order."""
        return tuple(self._tried)

    def run(self, destination: Path) -> JitSearchResult:
        """
        Search for a compatible build and download it to destination.

        Returns:
            Result naming the commit the Jit was built from

        Raises:
            CompatibleBuildNotFoundError: If neither pass finds a build
            RemoteQueryError: If a query or lookup fails to reach the server
        """
        destination = Path(destination)
        commit = self.version.commit_hash
        logger.info(f"Looking for a checked {self.jit_name} built close to {commit}")

        passes = [self._search_below, self._search_above]
        if self.prefer_later_commits:
            passes.reverse()

        for search in passes:
            hit = search(destination)
            if hit is not None:
                logger.info(
                    f"Found {self.jit_name} built from {hit} after {len(self._tried)} attempts"
                )
                return JitSearchResult(commit=hit, path=destination, attempts=len(self._tried))

        raise CompatibleBuildNotFoundError(
            f"Could not find a checked {self.jit_name} compatible with "
            f"{self.version.version} ({commit}) in the rolling build after trying "
            f"{len(self._tried)} commits. Increase the search depth "
            f"(DOTNET_DIFF_SEARCH_DEPTH or jit_search.depth) or build the Jit "
            f"from dotnet/runtime commit {commit} yourself.",
            tried_commits=self.tried_commits,
        )

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _search_below(self, destination: Path) -> Optional[str]:
        candidates = self._jit_commits_below()
        lower_bound = self._lower_bound()

        if lower_bound is None:
            logger.debug(f"Trying {self.depth} commits below the SDK's, no lower bound")
        else:
            logger.debug(
                f"Trying {self.depth} commits below the SDK's, "
                f"the lower bound is {lower_bound.hash} ({lower_bound.date})"
            )

        def in_range(record: CommitRecord) -> bool:
            return lower_bound is None or record.date >= lower_bound.date

        return self._try_candidates(candidates, in_range, destination)

    def _search_above(self, destination: Path) -> Optional[str]:
        anchor = self._anchor_date()
        if anchor is None:
            logger.debug("No Jit commits below the SDK's to anchor the upward search")
            return None

        upper_bound = self._upper_bound(anchor)
        candidates = list(reversed(self._descendants(self._jit_commits_above(anchor))))

        if upper_bound is None:
            logger.debug(f"Trying {self.depth} commits above the SDK's, no upper bound")
        else:
            logger.debug(
                f"Trying {self.depth} commits above the SDK's, "
                f"the upper bound is {upper_bound.hash} ({upper_bound.date})"
            )

        def in_range(record: CommitRecord) -> bool:
            return upper_bound is None or record.date <= upper_bound.date

        return self._try_candidates(candidates, in_range, destination)

    def _try_candidates(
        self,
        candidates: Sequence[CommitRecord],
        in_range: Callable[[CommitRecord], bool],
        destination: Path,
    ) -> Optional[str]:
        tried = 0
        for record in candidates:
            if tried >= self.depth:
                break
            if not in_range(record):
                break
            if record.hash in self._tried:
                continue

            tried += 1
            if self._try_commit(record.hash, destination):
                return record.hash

        return None

    def _try_commit(self, commit: str, destination: Path) -> bool:
        dev_assert(commit not in self._tried, f"commit {commit} tried twice")
        self._tried.append(commit)
        return self.build_store.try_download(commit, self.jit_name, destination)

    # ------------------------------------------------------------------
    # History queries
    # ------------------------------------------------------------------

    def _jit_commits_below(self) -> List[CommitRecord]:
        return self._query(self.version.commit_hash, JIT_SOURCE_PATHS)

    def _branch(self) -> str:
        if self._branch_name is None:
            self._branch_name = self.branch()
            logger.debug(f"Searching above the SDK's commit on '{self._branch_name}'")
        return self._branch_name

    def _jit_commits_above(self, anchor: datetime) -> List[CommitRecord]:
        return self._query(self._branch(), JIT_SOURCE_PATHS, since=anchor)

    def _lower_bound(self) -> Optional[CommitRecord]:
        changes = self._query(self.version.commit_hash, INTERFACE_GUID_PATHS)
        return changes[0] if changes else None

    def _upper_bound(self, anchor: datetime) -> Optional[CommitRecord]:
        changes = self._descendants(
            self._query(self._branch(), INTERFACE_GUID_PATHS, since=anchor)
        )
        return changes[-1] if changes else None

    def _anchor_date(self) -> Optional[datetime]:
        below = self._jit_commits_below()
        return below[0].date if below else None

    def _descendants(self, records: List[CommitRecord]) -> List[CommitRecord]:
        """
        Drop the records of a branch query that are not newer than the SDK's commit.

        A 'since' query starting at the anchor returns the anchor itself, and
        possibly interface changes made between the anchor and the SDK's
        commit. Known ancestors and anything dated before the most recent
        known ancestor are removed.
        """
        ancestors = self._jit_commits_below()
        lower_bound = self._lower_bound()

        known = {record.hash for record in ancestors}
        floor = ancestors[0].date if ancestors else None
        if lower_bound is not None:
            known.add(lower_bound.hash)
            if floor is None or lower_bound.date > floor:
                floor = lower_bound.date

        return [
            record
            for record in records
            if record.hash not in known and (floor is None or record.date >= floor)
        ]

    def _query(
        self, ref: str, paths: Tuple[str, ...], since: Optional[datetime] = None
    ) -> List[CommitRecord]:
        """
        Query the history of the first path that has any, memoized.

        Paths are tried in order; the next one is only queried when the
        previous returned no commits.
        """
        key = (ref, paths, since)
        if key in self._queries:
            return self._queries[key]

        commits: List[CommitRecord] = []
        for path in paths:
            commits = self.history.get_commits(ref, path, since=since)
            if commits:
                break

        self._queries[key] = commits
        return commits
