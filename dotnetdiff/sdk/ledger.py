"""
Installation ledger.

The ledger records which artifacts are installed for which versions and
targets. It is persisted as `<app dir>/dotnet-diff.json`:

    {
      "version": 1,
      "sdks": {
        "6.0.0-preview.4.21205.3+7b9ab0e...": {
          "crossgen2": true,
          "targets": {
            "linux-x64": {"runtime_assemblies": true, "jit": false}
          }
        }
      }
    }

The ledger is the single source of truth for presence: resolvers consult it
instead of looking at the filesystem. It is loaded once when the program
starts, mutated in memory and saved once when the program exits.

Example:
    >>> ledger = InstallationLedger.load(get_ledger_path())
    >>> if not ledger.is_present(version, ArtifactKind.CROSSGEN2):
    ...     install_crossgen2()
    ...     ledger.mark_present(version, ArtifactKind.CROSSGEN2)
    >>> ledger.save()
"""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from filelock import FileLock, Timeout

from dotnetdiff.core.exceptions import (
    DotnetDiffError,
    LedgerWriteError,
    dev_assert,
)
from dotnetdiff.core.filesystem import atomic_write
from dotnetdiff.sdk.artifacts import ArtifactKind
from dotnetdiff.sdk.runtime_identifier import RuntimeIdentifier
from dotnetdiff.sdk.version import FrameworkVersion

logger = logging.getLogger(__name__)

LEDGER_FORMAT_VERSION = 1
DEFAULT_LOCK_TIMEOUT = 10.0


@dataclass
class TargetEntry:
    """Presence flags for one runtime identifier of an SDK."""

    runtime_assemblies: bool = False
    jit: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "runtime_assemblies": self.runtime_assemblies,
            "jit": self.jit,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TargetEntry":
        if not isinstance(data, dict):
            return cls()
        return cls(
            runtime_assemblies=data.get("runtime_assemblies") is True,
            jit=data.get("jit") is True,
        )


@dataclass
class SdkEntry:
    """Presence flags for one SDK version."""

    crossgen2: bool = False
    targets: Dict[str, TargetEntry] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "crossgen2": self.crossgen2,
            "targets": {rid: entry.to_dict() for rid, entry in self.targets.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SdkEntry":
        if not isinstance(data, dict):
            return cls()

        targets = data.get("targets")
        if not isinstance(targets, dict):
            targets = {}

        return cls(
            crossgen2=data.get("crossgen2") is True,
            targets={
                str(rid): TargetEntry.from_dict(entry) for rid, entry in targets.items()
            },
        )


class InstallationLedger:
    """
    Persisted record of installed artifacts.

    Attributes:
        path: File the ledger was loaded from and is saved to by default
        lock_timeout: Seconds to wait for the ledger file lock when saving
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        sdks: Optional[Dict[str, SdkEntry]] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ):
        self.path = Path(path) if path is not None else None
        self.lock_timeout = lock_timeout
        self._sdks: Dict[str, SdkEntry] = sdks if sdks is not None else {}

    @classmethod
    def load(cls, path: Path) -> "InstallationLedger":
        """
        Load the ledger from disk.

        A missing file yields an empty ledger. A corrupt file is logged as a
        warning and also yields an empty ledger. This never raises.

        Args:
            path: Path to dotnet-diff.json

        Returns:
            Loaded ledger
        """
        path = Path(path)

        if not path.exists():
            logger.debug(f"Ledger not found, starting empty: {path}")
            return cls(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Invalid ledger file {path}, starting empty: {e}")
            return cls(path)

        if not isinstance(data, dict):
            logger.warning(f"Invalid ledger file {path}, starting empty")
            return cls(path)

        version = data.get("version", LEDGER_FORMAT_VERSION)
        if version != LEDGER_FORMAT_VERSION:
            logger.warning(
                f"Ledger version {version} not supported, starting empty: {path}"
            )
            return cls(path)

        sdks = data.get("sdks")
        if not isinstance(sdks, dict):
            sdks = {}

        ledger = cls(
            path, {str(raw): SdkEntry.from_dict(entry) for raw, entry in sdks.items()}
        )
        logger.debug(f"Loaded ledger with {len(ledger._sdks)} SDKs from {path}")
        return ledger

    def save(self, path: Optional[Path] = None) -> None:
        """
        Save the ledger atomically.

        The write is serialized with other dotnet-diff processes through a
        lock file next to the ledger.

        Args:
            path: Destination (defaults to the path the ledger was loaded from)

        Raises:
            LedgerWriteError: If the file cannot be written or locked
        """
        path = Path(path) if path is not None else self.path
        dev_assert(path is not None, "ledger has no path to save to")

        content = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

        try:
            with self._lock(path):
                atomic_write(path, content)
        except OSError as e:
            raise LedgerWriteError(f"Failed to save the ledger to {path}: {e}") from e

        logger.debug(f"Saved ledger to {path}")

    @contextmanager
    def _lock(self, path: Path):
        lock_path = path.with_name(f"{path.name}.lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)

        lock = FileLock(lock_path, timeout=self.lock_timeout)

        try:
            with lock:
                yield
        except Timeout as e:
            raise LedgerWriteError(
                f"Could not lock the ledger {path} within {self.lock_timeout} seconds"
            ) from e

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": LEDGER_FORMAT_VERSION,
            "sdks": {raw: entry.to_dict() for raw, entry in self._sdks.items()},
        }

    def is_present(
        self,
        version: FrameworkVersion,
        kind: ArtifactKind,
        target: Optional[RuntimeIdentifier] = None,
    ) -> bool:
        """
        Check whether an artifact is recorded as installed.

        Raises:
            DeveloperError: If target is given for Crossgen2 or missing otherwise
        """
        _check_target_argument(kind, target)

        sdk = self._sdks.get(version.raw)
        if sdk is None:
            return False

        if kind is ArtifactKind.CROSSGEN2:
            return sdk.crossgen2

        entry = sdk.targets.get(str(target))
        if entry is None:
            return False
        if kind is ArtifactKind.RUNTIME_ASSEMBLIES:
            return entry.runtime_assemblies
        return entry.jit

    def mark_present(
        self,
        version: FrameworkVersion,
        kind: ArtifactKind,
        target: Optional[RuntimeIdentifier] = None,
    ) -> None:
        """
        Record an artifact as installed, creating its SDK and target entries.

        Raises:
            DeveloperError: If target is given for Crossgen2 or missing otherwise
        """
        _check_target_argument(kind, target)

        sdk = self._sdks.setdefault(version.raw, SdkEntry())

        if kind is ArtifactKind.CROSSGEN2:
            sdk.crossgen2 = True
            return

        entry = sdk.targets.setdefault(str(target), TargetEntry())
        if kind is ArtifactKind.RUNTIME_ASSEMBLIES:
            entry.runtime_assemblies = True
        else:
            entry.jit = True

    def enumerate_versions(self) -> List[FrameworkVersion]:
        """
        List the versions that have a ledger entry.

        Keys that no longer parse are skipped with a warning.
        """
        versions = []
        for raw in self._sdks:
            try:
                versions.append(FrameworkVersion.parse(raw))
            except DotnetDiffError as e:
                logger.warning(f"Skipping unrecognized ledger entry '{raw}': {e}")
        return versions

    def enumerate_targets(self, version: FrameworkVersion) -> List[RuntimeIdentifier]:
        """
        List the runtime identifiers that have an entry under version.

        Keys that no longer parse are skipped with a warning.
        """
        sdk = self._sdks.get(version.raw)
        if sdk is None:
            return []

        targets = []
        for rid in sdk.targets:
            try:
                targets.append(RuntimeIdentifier.parse(rid))
            except DotnetDiffError as e:
                logger.warning(f"Skipping unrecognized target '{rid}' of {version.raw}: {e}")
        return targets


def _check_target_argument(
    kind: ArtifactKind, target: Optional[RuntimeIdentifier]
) -> None:
    if kind.is_per_target:
        dev_assert(target is not None, f"{kind.display_name} requires a target")
    else:
        dev_assert(target is None, f"{kind.display_name} does not take a target")
