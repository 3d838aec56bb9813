"""
Unit tests for the exception hierarchy.
"""

import pytest

from dotnetdiff.core.exceptions import (
    CompatibleBuildNotFoundError,
    DeveloperError,
    DotnetDiffError,
    DownloadError,
    InvalidArtifactError,
    MissingArtifactError,
    PackageDownloadError,
    RemoteQueryError,
    UnsupportedVersionError,
    UserError,
    VersionFormatError,
    dev_assert,
)


class TestHierarchy:
    """Test how errors are classified."""

    @pytest.mark.parametrize(
        "error_type",
        [
            VersionFormatError,
            UnsupportedVersionError,
            RemoteQueryError,
            DownloadError,
            PackageDownloadError,
            CompatibleBuildNotFoundError,
            MissingArtifactError,
        ],
    )
    def test_user_errors(self, error_type):
        """Test user-facing errors derive from UserError."""
        assert issubclass(error_type, UserError)
        assert issubclass(error_type, DotnetDiffError)

    def test_invalid_artifact_is_developer_error(self):
        """Test artifact shape mismatches are bugs."""
        assert issubclass(InvalidArtifactError, DeveloperError)
        assert not issubclass(InvalidArtifactError, UserError)


class TestMessages:
    """Test error messages."""

    def test_version_format_error(self):
        """Test invalid version message names the value."""
        error = VersionFormatError("6.0")
        assert "Invalid dotnet version: '6.0'" in str(error)
        assert error.value == "6.0"

    def test_unsupported_version_error(self):
        """Test old versions are reported as unsupported."""
        error = UnsupportedVersionError("3.1.0+abc", 3)
        assert "starting with .NET 5" in str(error)
        assert error.major == 3

    def test_remote_query_error_with_status(self):
        """Test status code is appended to the message."""
        error = RemoteQueryError("Failed to retrieve commits", status_code=403)
        assert str(error) == "Failed to retrieve commits, server returned: 403"
        assert error.status_code == 403

    def test_remote_query_error_without_status(self):
        """Test message is unchanged without a status code."""
        error = RemoteQueryError("Connection refused")
        assert str(error) == "Connection refused"
        assert error.status_code is None

    def test_missing_artifact_suggests_reinstall(self, tmp_path):
        """Test missing artifact message tells the user what to do."""
        error = MissingArtifactError("Jit", tmp_path / "libclrjit.so")
        assert "Reinstall" in str(error)
        assert error.kind == "Jit"

    def test_build_not_found_keeps_tried_commits(self):
        """Test tried commits are kept on the error."""
        error = CompatibleBuildNotFoundError("nothing", tried_commits=("a", "b"))
        assert error.tried_commits == ("a", "b")


class TestDevAssert:
    """Test dev_assert."""

    def test_passes_when_true(self):
        """Test no error for a holding condition."""
        dev_assert(True, "never raised")

    def test_raises_developer_error(self):
        """Test failing condition raises DeveloperError."""
        with pytest.raises(DeveloperError, match="Assertion failed: broken"):
            dev_assert(False, "broken")

    def test_names_caller_location(self):
        """Test the error names this test file."""
        with pytest.raises(DeveloperError) as exc_info:
            dev_assert(1 == 2)

        assert "test_exceptions.py" in str(exc_info.value)
