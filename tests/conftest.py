"""
Pytest configuration and shared fixtures for dotnet-diff tests.
"""

import io
import json
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, Generator

import pytest

from dotnetdiff.core.config import Settings
from dotnetdiff.sdk.runtime_identifier import RuntimeIdentifier
from dotnetdiff.sdk.version import FrameworkVersion

SDK_COMMIT = "7b9ab0e196c78968bac455bf29a9845a85e4a022"
SDK_VERSION = f"6.0.0-preview.4.21205.3+{SDK_COMMIT}"


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def app_dir(temp_dir: Path, monkeypatch) -> Path:
    """Isolated application directory, also exported as DOTNET_DIFF_HOME."""
    path = temp_dir / "app"
    path.mkdir()
    monkeypatch.setenv("DOTNET_DIFF_HOME", str(path))
    return path


@pytest.fixture
def clean_env(monkeypatch):
    """Remove dotnet-diff environment overrides."""
    for name in (
        "DOTNET_DIFF_DEBUG_LOG",
        "DOTNET_DIFF_KEEP_TEMP_FILES",
        "DOTNET_DIFF_PREFER_LATER_COMMITS",
        "DOTNET_DIFF_SEARCH_DEPTH",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    """Default settings."""
    return Settings()


@pytest.fixture
def sdk_version() -> FrameworkVersion:
    """A supported preview version."""
    return FrameworkVersion.parse(SDK_VERSION)


@pytest.fixture
def linux_x64() -> RuntimeIdentifier:
    return RuntimeIdentifier.parse("linux-x64")


@pytest.fixture
def make_nupkg():
    """Factory building an in-memory package (zip archive) from {name: content}."""

    def build(files: Dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            for name, content in files.items():
                zf.writestr(name, content)
        return buffer.getvalue()

    return build


@pytest.fixture
def commits_json():
    """Factory for the JSON body of the GitHub commit list from (sha, date) pairs."""

    def build(*commits) -> str:
        return json.dumps(
            [
                {"sha": sha, "commit": {"committer": {"date": date}}}
                for sha, date in commits
            ]
        )

    return build
