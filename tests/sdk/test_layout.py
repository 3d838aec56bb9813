"""
Unit tests for the on-disk artifact layout.
"""

import pytest

from dotnetdiff.core.exceptions import DeveloperError
from dotnetdiff.sdk.artifacts import ArtifactKind
from dotnetdiff.sdk.layout import InstallLayout
from dotnetdiff.sdk.runtime_identifier import RuntimeIdentifier


@pytest.fixture
def layout(tmp_path, linux_x64):
    return InstallLayout(tmp_path, linux_x64)


class TestInstallLayout:
    """Test InstallLayout path mapping."""

    def test_sdk_dir(self, layout, tmp_path, sdk_version):
        assert layout.sdk_dir(sdk_version) == tmp_path / "SDKs" / sdk_version.raw

    def test_crossgen2(self, layout, sdk_version):
        sdk_dir = layout.sdk_dir(sdk_version)
        assert layout.crossgen2_dir(sdk_version) == sdk_dir / "Crossgen2"
        assert layout.crossgen2_path(sdk_version) == sdk_dir / "Crossgen2" / "crossgen2"

    def test_crossgen2_on_windows(self, tmp_path, sdk_version):
        layout = InstallLayout(tmp_path, RuntimeIdentifier.parse("win-x64"))
        assert layout.crossgen2_path(sdk_version).name == "crossgen2.exe"

    def test_runtime_assemblies(self, layout, sdk_version):
        target = RuntimeIdentifier.parse("win-arm64")
        assert (
            layout.runtime_assemblies_dir(sdk_version, target)
            == layout.sdk_dir(sdk_version) / "win-arm64" / "RuntimeAssemblies"
        )

    def test_native_jit(self, layout, sdk_version, linux_x64):
        assert (
            layout.jit_path(sdk_version, linux_x64)
            == layout.sdk_dir(sdk_version) / "linux-x64" / "Jit" / "libclrjit.so"
        )

    def test_cross_jit(self, layout, sdk_version):
        target = RuntimeIdentifier.parse("win-arm64")
        assert layout.jit_path(sdk_version, target).name == "libclrjit_windows_arm64.so"

    def test_artifact_dir(self, layout, sdk_version, linux_x64):
        assert layout.artifact_dir(
            sdk_version, ArtifactKind.CROSSGEN2
        ) == layout.crossgen2_dir(sdk_version)
        assert layout.artifact_dir(
            sdk_version, ArtifactKind.JIT, linux_x64
        ) == layout.jit_dir(sdk_version, linux_x64)
        assert layout.artifact_dir(
            sdk_version, ArtifactKind.RUNTIME_ASSEMBLIES, linux_x64
        ) == layout.runtime_assemblies_dir(sdk_version, linux_x64)

    def test_artifact_dir_checks_target(self, layout, sdk_version, linux_x64):
        with pytest.raises(DeveloperError):
            layout.artifact_dir(sdk_version, ArtifactKind.JIT)
        with pytest.raises(DeveloperError):
            layout.artifact_dir(sdk_version, ArtifactKind.CROSSGEN2, linux_x64)

    def test_pure(self, layout, sdk_version, linux_x64, tmp_path):
        """Test computing paths creates nothing."""
        layout.jit_path(sdk_version, linux_x64)
        assert list(tmp_path.iterdir()) == []
