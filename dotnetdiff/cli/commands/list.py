"""
List command implementation.

Shows what the ledger records as installed.
"""

import logging

from dotnetdiff.cli.utils import CommandContext
from dotnetdiff.sdk.artifacts import ArtifactKind

logger = logging.getLogger(__name__)


def run(args, context: CommandContext) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments
        context: Settings and ledger of this invocation

    Returns:
        Exit code (0 for success)
    """
    ledger = context.ledger

    print(f"Install location: '{context.app_dir}'")

    versions = ledger.enumerate_versions()
    if not versions:
        print("No SDKs installed")
        return 0

    for version in versions:
        print(f"- SDK for {version}")
        if ledger.is_present(version, ArtifactKind.CROSSGEN2):
            print("  - Crossgen2")

        for target in ledger.enumerate_targets(version):
            has_assemblies = ledger.is_present(
                version, ArtifactKind.RUNTIME_ASSEMBLIES, target
            )
            has_jit = ledger.is_present(version, ArtifactKind.JIT, target)
            if not (has_assemblies or has_jit):
                continue

            print(f"  - {target} target")
            if has_assemblies:
                print("    - Runtime assemblies")
            if has_jit:
                print("    - Jit")

    return 0
