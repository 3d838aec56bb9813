"""
On-disk layout of installed artifacts.

Everything lives under the application directory:

    <app dir>/
    └── SDKs/
        └── <raw version>/
            ├── Crossgen2/crossgen2[.exe]
            └── <rid>/
                ├── RuntimeAssemblies/*.dll
                └── Jit/<jit file>

Path computation is pure: nothing here touches the filesystem.
"""

from pathlib import Path
from typing import Optional

from dotnetdiff.core.directory import SDKS_DIR_NAME
from dotnetdiff.core.exceptions import dev_assert
from dotnetdiff.sdk.artifacts import ArtifactKind
from dotnetdiff.sdk.runtime_identifier import (
    RuntimeIdentifier,
    executable_file_name,
    jit_file_name,
)
from dotnetdiff.sdk.version import FrameworkVersion

CROSSGEN2_DIR_NAME = "Crossgen2"
RUNTIME_ASSEMBLIES_DIR_NAME = "RuntimeAssemblies"
JIT_DIR_NAME = "Jit"


class InstallLayout:
    """
    Maps (version, target, kind) to paths under the application directory.

    Args:
        app_dir: Application directory
        host: Runtime identifier of the machine the artifacts run on
    """

    def __init__(self, app_dir: Path, host: RuntimeIdentifier):
        self.app_dir = Path(app_dir)
        self.host = host

    @property
    def sdks_dir(self) -> Path:
        return self.app_dir / SDKS_DIR_NAME

    def sdk_dir(self, version: FrameworkVersion) -> Path:
        return self.sdks_dir / version.raw

    def target_dir(self, version: FrameworkVersion, target: RuntimeIdentifier) -> Path:
        return self.sdk_dir(version) / str(target)

    def crossgen2_dir(self, version: FrameworkVersion) -> Path:
        return self.sdk_dir(version) / CROSSGEN2_DIR_NAME

    def crossgen2_path(self, version: FrameworkVersion) -> Path:
        return self.crossgen2_dir(version) / executable_file_name(
            "crossgen2", self.host.platform
        )

    def runtime_assemblies_dir(
        self, version: FrameworkVersion, target: RuntimeIdentifier
    ) -> Path:
        return self.target_dir(version, target) / RUNTIME_ASSEMBLIES_DIR_NAME

    def jit_dir(self, version: FrameworkVersion, target: RuntimeIdentifier) -> Path:
        return self.target_dir(version, target) / JIT_DIR_NAME

    def jit_path(self, version: FrameworkVersion, target: RuntimeIdentifier) -> Path:
        return self.jit_dir(version, target) / jit_file_name(target, self.host)

    def artifact_dir(
        self,
        version: FrameworkVersion,
        kind: ArtifactKind,
        target: Optional[RuntimeIdentifier] = None,
    ) -> Path:
        """
        Directory an artifact kind is installed into.

        Raises:
            DeveloperError: If target is given for Crossgen2 or missing otherwise
        """
        dev_assert(
            kind.is_per_target == (target is not None),
            f"{kind.display_name} {'requires' if kind.is_per_target else 'does not take'} a target",
        )

        if kind is ArtifactKind.CROSSGEN2:
            return self.crossgen2_dir(version)
        if kind is ArtifactKind.RUNTIME_ASSEMBLIES:
            return self.runtime_assemblies_dir(version, target)
        return self.jit_dir(version, target)
