"""
Resolve-or-install access to the artifacts of an SDK version.

Resolving an artifact follows the same steps for every kind:

1. Return the handle already resolved in this process, if any.
2. If the ledger records the artifact as installed, build a handle from its
   layout path.
3. Otherwise install it, mark it in the ledger and return the new handle.

Example:
    >>> ledger = InstallationLedger.load(get_ledger_path())
    >>> resolver = create_resolver(version, ledger, load_settings())
    >>> jit = resolver.resolve_jit(RuntimeIdentifier.parse("linux-arm64"))
    >>> ledger.save()
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from dotnetdiff.core.config import Settings
from dotnetdiff.core.directory import get_app_dir
from dotnetdiff.core.download import ProgressCallback
from dotnetdiff.core.exceptions import PackageDownloadError, UnsupportedTargetError
from dotnetdiff.core.filesystem import (
    ensure_directory,
    make_executable,
    move_directory,
    recreate_directory,
    safe_rmtree,
)
from dotnetdiff.sdk.artifacts import ArtifactKind, Crossgen2, Jit, RuntimeAssemblies
from dotnetdiff.sdk.github import CommitHistory
from dotnetdiff.sdk.jit_search import CompatibleJitSearch
from dotnetdiff.sdk.layout import InstallLayout
from dotnetdiff.sdk.ledger import InstallationLedger
from dotnetdiff.sdk.packages import PackageFeed
from dotnetdiff.sdk.releases import DotnetReleases, branch_for, fetch_releases
from dotnetdiff.sdk.rolling_build import RollingBuildStore
from dotnetdiff.sdk.runtime_identifier import RuntimeIdentifier, jit_is_published
from dotnetdiff.sdk.version import FrameworkVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """The resolved artifacts of one runtime identifier."""

    runtime_identifier: RuntimeIdentifier
    runtime_assemblies: RuntimeAssemblies
    jit: Jit


@dataclass(frozen=True)
class Sdk:
    """The resolved artifacts of an SDK version and its requested targets."""

    version: FrameworkVersion
    crossgen2: Crossgen2
    targets: Dict[RuntimeIdentifier, Target]


def _resolve(cache: dict, kind: ArtifactKind, is_present: bool, load, install):
    handle = cache.get(kind)
    if handle is not None:
        return handle

    if is_present:
        handle = load()
        cache[kind] = handle
        return handle

    return install()


class SdkResolver:
    """
    Resolves and installs the artifacts of one SDK version.

    Args:
        version: SDK version
        ledger: Installation ledger shared by the whole program
        layout: Where artifacts live on disk
        feed: Package source for Crossgen2 and the runtime assemblies
        history: Commit history client used by the Jit search
        build_store: Rolling build store the Jit is downloaded from
        settings: Effective settings
        releases: Returns the release index (defaults to fetching it)
    """

    def __init__(
        self,
        version: FrameworkVersion,
        ledger: InstallationLedger,
        layout: InstallLayout,
        feed: PackageFeed,
        history: CommitHistory,
        build_store: RollingBuildStore,
        settings: Settings,
        releases: Optional[Callable[[], DotnetReleases]] = None,
    ):
        self.version = version
        self.ledger = ledger
        self.layout = layout
        self.feed = feed
        self.history = history
        self.build_store = build_store
        self.settings = settings
        self.releases = releases or (lambda: fetch_releases(settings.request_timeout))

        self._handles: Dict[ArtifactKind, Crossgen2] = {}
        self._targets: Dict[RuntimeIdentifier, "TargetResolver"] = {}

    @property
    def host(self) -> RuntimeIdentifier:
        return self.layout.host

    def target(self, runtime_identifier: RuntimeIdentifier) -> "TargetResolver":
        """Resolver for one runtime identifier (one instance per identifier)."""
        resolver = self._targets.get(runtime_identifier)
        if resolver is None:
            resolver = TargetResolver(self, runtime_identifier)
            self._targets[runtime_identifier] = resolver
        return resolver

    def resolve_crossgen2(self) -> Crossgen2:
        return _resolve(
            self._handles,
            ArtifactKind.CROSSGEN2,
            self.ledger.is_present(self.version, ArtifactKind.CROSSGEN2),
            lambda: Crossgen2.from_path(self.layout.crossgen2_path(self.version)),
            self.install_crossgen2,
        )

    def resolve_runtime_assemblies(
        self, runtime_identifier: RuntimeIdentifier
    ) -> RuntimeAssemblies:
        return self.target(runtime_identifier).resolve_runtime_assemblies()

    def resolve_jit(self, runtime_identifier: RuntimeIdentifier) -> Jit:
        return self.target(runtime_identifier).resolve_jit()

    def resolve_all(self, runtime_identifiers: Iterable[RuntimeIdentifier]) -> Sdk:
        """Resolve Crossgen2 and every target, installing whatever is missing."""
        crossgen2 = self.resolve_crossgen2()
        targets = {
            rid: self.target(rid).resolve() for rid in _unique(runtime_identifiers)
        }
        return Sdk(version=self.version, crossgen2=crossgen2, targets=targets)

    def install_all(self, runtime_identifiers: Iterable[RuntimeIdentifier]) -> Sdk:
        """Install Crossgen2 and every target, whether or not they are installed."""
        crossgen2 = self.install_crossgen2()
        targets = {
            rid: self.target(rid).install() for rid in _unique(runtime_identifiers)
        }
        return Sdk(version=self.version, crossgen2=crossgen2, targets=targets)

    def install_crossgen2(self) -> Crossgen2:
        """
        Install Crossgen2 for the host from the .NET feed.

        Raises:
            PackageDownloadError: If the package cannot be downloaded or lacks tools/
        """
        package_name = f"Microsoft.NETCore.App.Crossgen2.{self.host}"
        directory = self.layout.artifact_dir(self.version, ArtifactKind.CROSSGEN2)

        logger.info(f"Installing Crossgen2 for {self.version}")

        with self.feed.acquire(
            package_name, self.version.version, self.version.major
        ) as package_dir:
            tools = package_dir / "tools"
            if not tools.is_dir():
                raise PackageDownloadError(
                    f"{package_name} {self.version.version} does not contain 'tools'"
                )
            _replace_directory(tools, directory, self.layout.app_dir)

        path = self.layout.crossgen2_path(self.version)
        if not path.is_file():
            raise PackageDownloadError(f"{package_name} does not contain {path.name}")
        make_executable(path)
        logger.info(f"Copied Crossgen2 to '{directory}'")

        crossgen2 = Crossgen2.from_path(path)
        self.ledger.mark_present(self.version, ArtifactKind.CROSSGEN2)
        self._handles[ArtifactKind.CROSSGEN2] = crossgen2
        return crossgen2

    def install_runtime_assemblies(
        self, runtime_identifier: RuntimeIdentifier
    ) -> RuntimeAssemblies:
        return self.target(runtime_identifier).install_runtime_assemblies()

    def install_jit(self, runtime_identifier: RuntimeIdentifier) -> Jit:
        return self.target(runtime_identifier).install_jit()

    def branch(self) -> str:
        """Branch of dotnet/runtime the version was built from."""
        return branch_for(self.version, self.releases())


class TargetResolver:
    """Resolves and installs the per-target artifacts of an SDK version."""

    def __init__(self, sdk: SdkResolver, runtime_identifier: RuntimeIdentifier):
        self.sdk = sdk
        self.runtime_identifier = runtime_identifier
        self._handles: Dict[ArtifactKind, object] = {}

    @property
    def version(self) -> FrameworkVersion:
        return self.sdk.version

    def _is_present(self, kind: ArtifactKind) -> bool:
        return self.sdk.ledger.is_present(self.version, kind, self.runtime_identifier)

    def resolve(self) -> Target:
        return Target(
            runtime_identifier=self.runtime_identifier,
            runtime_assemblies=self.resolve_runtime_assemblies(),
            jit=self.resolve_jit(),
        )

    def install(self) -> Target:
        return Target(
            runtime_identifier=self.runtime_identifier,
            runtime_assemblies=self.install_runtime_assemblies(),
            jit=self.install_jit(),
        )

    def resolve_runtime_assemblies(self) -> RuntimeAssemblies:
        layout = self.sdk.layout
        return _resolve(
            self._handles,
            ArtifactKind.RUNTIME_ASSEMBLIES,
            self._is_present(ArtifactKind.RUNTIME_ASSEMBLIES),
            lambda: RuntimeAssemblies.from_directory(
                layout.runtime_assemblies_dir(self.version, self.runtime_identifier)
            ),
            self.install_runtime_assemblies,
        )

    def resolve_jit(self) -> Jit:
        layout = self.sdk.layout
        return _resolve(
            self._handles,
            ArtifactKind.JIT,
            self._is_present(ArtifactKind.JIT),
            lambda: Jit.from_path(layout.jit_path(self.version, self.runtime_identifier)),
            self.install_jit,
        )

    def install_runtime_assemblies(self) -> RuntimeAssemblies:
        """
        Install the runtime assemblies of this target from the .NET feed.

        Raises:
            PackageDownloadError: If the package cannot be downloaded or lacks the
                assemblies for the version's framework
        """
        rid = self.runtime_identifier
        version = self.version
        layout = self.sdk.layout
        package_name = f"Microsoft.NETCore.App.Runtime.{rid}"
        directory = layout.artifact_dir(version, ArtifactKind.RUNTIME_ASSEMBLIES, rid)

        logger.info(f"Installing runtime assemblies for {rid}")

        with self.sdk.feed.acquire(package_name, version.version, version.major) as package_dir:
            lib_dir = package_dir / "runtimes" / str(rid) / "lib" / version.moniker
            if not lib_dir.is_dir():
                raise PackageDownloadError(
                    f"{package_name} {version.version} does not contain "
                    f"assemblies for {version.moniker}"
                )
            _replace_directory(lib_dir, directory, layout.app_dir)

        logger.info(f"Copied runtime assemblies to '{directory}'")

        assemblies = RuntimeAssemblies.from_directory(directory)
        self.sdk.ledger.mark_present(version, ArtifactKind.RUNTIME_ASSEMBLIES, rid)
        self._handles[ArtifactKind.RUNTIME_ASSEMBLIES] = assemblies
        return assemblies

    def install_jit(self) -> Jit:
        """
        Install a Jit compatible with the version from the rolling build.

        Raises:
            UnsupportedTargetError: If the rolling build has no Jit for this target
            CompatibleBuildNotFoundError: If no compatible build is found
        """
        rid = self.runtime_identifier
        version = self.version
        layout = self.sdk.layout
        settings = self.sdk.settings

        if not jit_is_published(rid):
            raise UnsupportedTargetError(f"There are no builds of the Jit for {rid}")

        logger.info(f"Installing the Jit for {rid}")

        recreate_directory(
            layout.artifact_dir(version, ArtifactKind.JIT, rid), require_prefix=layout.app_dir
        )
        path = layout.jit_path(version, rid)

        search = CompatibleJitSearch(
            version,
            path.name,
            self.sdk.history,
            self.sdk.build_store,
            branch=self.sdk.branch,
            depth=settings.jit_search_depth,
            prefer_later_commits=settings.prefer_later_commits,
        )
        result = search.run(path)
        logger.info(f"Copied the Jit to '{result.path}'")

        jit = Jit.from_path(result.path)
        self.sdk.ledger.mark_present(version, ArtifactKind.JIT, rid)
        self._handles[ArtifactKind.JIT] = jit
        return jit


def _replace_directory(source: Path, destination: Path, app_dir: Path) -> None:
    safe_rmtree(destination, require_prefix=app_dir)
    ensure_directory(destination.parent)
    move_directory(source, destination)


def _unique(runtime_identifiers: Iterable[RuntimeIdentifier]):
    return list(dict.fromkeys(runtime_identifiers))


def create_resolver(
    version: FrameworkVersion,
    ledger: InstallationLedger,
    settings: Settings,
    app_dir: Optional[Path] = None,
    host: Optional[RuntimeIdentifier] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> SdkResolver:
    """
    Build an SdkResolver wired to the real remote services.

    Args:
        version: SDK version
        ledger: Installation ledger
        settings: Effective settings
        app_dir: Application directory (defaults to get_app_dir())
        host: Host runtime identifier (defaults to the current machine)
        progress_callback: Optional callback for download progress
    """
    host = host or RuntimeIdentifier.host()
    layout = InstallLayout(app_dir or get_app_dir(), host)

    return SdkResolver(
        version,
        ledger,
        layout,
        feed=PackageFeed(
            timeout=settings.download_timeout,
            keep_temp_files=settings.keep_temp_files,
            progress_callback=progress_callback,
        ),
        history=CommitHistory(
            timeout=settings.request_timeout,
            per_page=settings.commits_per_page,
            token=settings.github_token,
        ),
        build_store=RollingBuildStore(
            host,
            timeout=settings.request_timeout,
            progress_callback=progress_callback,
        ),
        settings=settings,
    )
