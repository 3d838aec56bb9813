"""
Handles to installed artifacts.

A handle is a validated reference to something on disk. Constructing one
checks two separate things:

- the path has the shape of the artifact it claims to be. Getting this wrong
  is a bug in the caller (InvalidArtifactError).
- the artifact actually exists. It may have been deleted behind the ledger's
  back, which the user fixes by reinstalling (MissingArtifactError).
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Tuple

from dotnetdiff.core.exceptions import InvalidArtifactError, MissingArtifactError

CROSSGEN2_FILE_NAMES = ("crossgen2", "crossgen2.exe")
JIT_NAME_MARKER = "clrjit"


class ArtifactKind(Enum):
    """Kinds of installable artifacts. Values are the ledger's JSON keys."""

    CROSSGEN2 = "crossgen2"
    RUNTIME_ASSEMBLIES = "runtime_assemblies"
    JIT = "jit"

    @property
    def is_per_target(self) -> bool:
        """Whether the artifact is installed once per runtime identifier."""
        return self is not ArtifactKind.CROSSGEN2

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    ArtifactKind.CROSSGEN2: "Crossgen2",
    ArtifactKind.RUNTIME_ASSEMBLIES: "runtime assemblies",
    ArtifactKind.JIT: "Jit",
}


@dataclass(frozen=True)
class Crossgen2:
    """The Crossgen2 ahead-of-time compiler executable."""

    path: Path

    @classmethod
    def from_path(cls, path: Path) -> "Crossgen2":
        path = Path(path)
        if path.name not in CROSSGEN2_FILE_NAMES:
            raise InvalidArtifactError(
                f"'{path}' is not a path to the crossgen2 compiler"
            )
        if not path.is_file():
            raise MissingArtifactError(ArtifactKind.CROSSGEN2.display_name, path)
        return cls(path)


@dataclass(frozen=True)
class Jit:
    """A clrjit shared library."""

    path: Path

    @classmethod
    def from_path(cls, path: Path) -> "Jit":
        path = Path(path)
        if JIT_NAME_MARKER not in path.name:
            raise InvalidArtifactError(f"'{path}' is not a path to a Jit compiler")
        if not path.is_file():
            raise MissingArtifactError(ArtifactKind.JIT.display_name, path)
        return cls(path)


@dataclass(frozen=True)
class RuntimeAssemblies:
    """
    The managed runtime assemblies of one target.

    Attributes:
        directory: Directory holding the assemblies
        assemblies: Every *.dll in directory, sorted by name
    """

    directory: Path
    assemblies: Tuple[Path, ...]

    @classmethod
    def from_directory(cls, directory: Path) -> "RuntimeAssemblies":
        directory = Path(directory)
        display_name = ArtifactKind.RUNTIME_ASSEMBLIES.display_name

        if not directory.exists():
            raise MissingArtifactError(display_name, directory)
        if not directory.is_dir():
            raise InvalidArtifactError(f"'{directory}' is not a directory")

        assemblies = tuple(sorted(directory.glob("*.dll")))
        if not assemblies:
            raise MissingArtifactError(display_name, directory)

        return cls(directory, assemblies)
