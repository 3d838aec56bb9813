"""
Install command implementation.

Installs SDK artifacts for a framework version, replacing what is already
installed:

    dotnet-diff install sdk -f latest -r linux-x64 -r win-arm64
    dotnet-diff install jit -f 6.0.0-preview.4.21205.3+7b9ab0e... -r linux-arm64
"""

import logging

from dotnetdiff.cli.utils import (
    CommandContext,
    log_progress,
    resolve_runtimes,
    resolve_version,
)
from dotnetdiff.sdk.resolver import create_resolver

logger = logging.getLogger(__name__)


def run(args, context: CommandContext) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments
        context: Settings and ledger of this invocation

    Returns:
        Exit code (0 for success)
    """
    version = resolve_version(args.framework, context.settings)
    runtimes = resolve_runtimes(args.runtimes)

    logger.debug(f"Installing {args.artifact} of {version.raw} for {runtimes}")

    resolver = create_resolver(
        version,
        context.ledger,
        context.settings,
        app_dir=context.app_dir,
        progress_callback=log_progress,
    )

    if args.artifact == "sdk":
        sdk = resolver.install_all(runtimes)
        print(f"Installed {version}")
        print(f"  Crossgen2: {sdk.crossgen2.path}")
        for rid, target in sdk.targets.items():
            print(f"  {rid} runtime assemblies: {target.runtime_assemblies.directory}")
            print(f"  {rid} Jit: {target.jit.path}")

    elif args.artifact == "crossgen2":
        crossgen2 = resolver.install_crossgen2()
        print(f"Installed Crossgen2 of {version.version}: {crossgen2.path}")

    elif args.artifact == "runtime-assemblies":
        for rid in runtimes:
            assemblies = resolver.install_runtime_assemblies(rid)
            print(
                f"Installed {len(assemblies.assemblies)} runtime assemblies for {rid}: "
                f"{assemblies.directory}"
            )

    elif args.artifact == "jit":
        for rid in runtimes:
            jit = resolver.install_jit(rid)
            print(f"Installed the Jit for {rid}: {jit.path}")

    return 0
