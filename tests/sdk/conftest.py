"""
Fakes for the remote services used by the Jit search and the resolvers.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from dotnetdiff.core.exceptions import PackageDownloadError
from dotnetdiff.sdk.github import CommitRecord


def day(n: int) -> datetime:
    return datetime(2021, 4, n, tzinfo=timezone.utc)


class FakeCommitHistory:
    """Commit history answering from a table keyed by (ref, path)."""

    def __init__(self):
        self.table: Dict[Tuple[str, str], List[CommitRecord]] = {}
        self.calls = []

    def add(self, ref: str, path: str, *commits: Tuple[str, int]) -> None:
        self.table[(ref, path)] = [CommitRecord(sha, day(n)) for sha, n in commits]

    def get_commits(self, ref, path, since=None):
        self.calls.append((ref, path, since))
        return list(self.table.get((ref, path), []))


class FakeBuildStore:
    """Build store holding builds for a fixed set of commits."""

    def __init__(self, builds=()):
        self.builds = set(builds)
        self.calls = []

    def try_download(self, commit, jit_name, destination):
        self.calls.append((commit, jit_name))
        if commit not in self.builds:
            return False
        Path(destination).write_bytes(b"jit")
        return True


class FakePackageFeed:
    """Package feed serving packages from {name: {relative path: bytes}}."""

    def __init__(self, root: Path):
        self.root = root
        self.packages: Dict[str, Dict[str, bytes]] = {}
        self.acquired = []

    def add(self, name: str, files: Dict[str, bytes]) -> None:
        self.packages[name] = files

    @contextmanager
    def acquire(self, package_name, package_version, feed_major):
        self.acquired.append((package_name, package_version, feed_major))
        if package_name not in self.packages:
            raise PackageDownloadError(f"Failed to download {package_name}", status_code=404)

        package_dir = self.root / f"{package_name}-{len(self.acquired)}"
        for relative, content in self.packages[package_name].items():
            path = package_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        yield package_dir


@pytest.fixture
def history() -> FakeCommitHistory:
    return FakeCommitHistory()


@pytest.fixture
def build_store() -> FakeBuildStore:
    return FakeBuildStore()


@pytest.fixture
def feed(tmp_path) -> FakePackageFeed:
    root = tmp_path / "feed"
    root.mkdir()
    return FakePackageFeed(root)
