"""
SDK artifact model and resolution.

Version and runtime identifier types, the installation ledger, on-disk layout,
the remote services artifacts come from and the resolvers tying them together.
"""

from dotnetdiff.sdk.artifacts import ArtifactKind, Crossgen2, Jit, RuntimeAssemblies
from dotnetdiff.sdk.jit_search import CompatibleJitSearch, JitSearchResult
from dotnetdiff.sdk.layout import InstallLayout
from dotnetdiff.sdk.ledger import InstallationLedger
from dotnetdiff.sdk.resolver import (
    Sdk,
    SdkResolver,
    Target,
    TargetResolver,
    create_resolver,
)
from dotnetdiff.sdk.runtime_identifier import (
    Architecture,
    Platform,
    RuntimeIdentifier,
)
from dotnetdiff.sdk.version import FrameworkVersion

__all__ = [
    "ArtifactKind",
    "Crossgen2",
    "Jit",
    "RuntimeAssemblies",
    "CompatibleJitSearch",
    "JitSearchResult",
    "InstallLayout",
    "InstallationLedger",
    "Sdk",
    "SdkResolver",
    "Target",
    "TargetResolver",
    "create_resolver",
    "Architecture",
    "Platform",
    "RuntimeIdentifier",
    "FrameworkVersion",
]
