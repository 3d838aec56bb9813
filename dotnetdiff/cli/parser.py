"""
dotnet-diff CLI argument parser.

This module implements the command-line interface for dotnet-diff using argparse.
"""

import argparse
import importlib
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotnetdiff import __version__
from dotnetdiff.cli.utils import CommandContext, print_error
from dotnetdiff.core.config import load_settings
from dotnetdiff.core.directory import (
    ensure_app_structure,
    get_app_dir,
    get_config_path,
    get_ledger_path,
)
from dotnetdiff.core.exceptions import DeveloperError, LedgerWriteError, UserError
from dotnetdiff.sdk.ledger import InstallationLedger

logger = logging.getLogger(__name__)

INSTALLABLE_ARTIFACTS = ("sdk", "crossgen2", "runtime-assemblies", "jit")

EXIT_USER_ERROR = 1
EXIT_DEVELOPER_ERROR = 2

COMMAND_MODULES = {
    "install": "dotnetdiff.cli.commands.install",
    "list": "dotnetdiff.cli.commands.list",
}


class CLI:
    """dotnet-diff command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="dotnet-diff",
            description="dotnet-diff - install the .NET compilers needed to diff native code",
            epilog='Use "dotnet-diff COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"dotnet-diff {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to settings file (default: <app dir>/config.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_list_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install SDK artifacts",
            description=(
                "Install Crossgen2, the runtime assemblies or the Jit of a .NET "
                "version, replacing any existing installation"
            ),
        )
        parser.add_argument(
            "artifact",
            choices=INSTALLABLE_ARTIFACTS,
            metavar="ARTIFACT",
            help="What to install (sdk|crossgen2|runtime-assemblies|jit)",
        )
        parser.add_argument(
            "-f",
            "--framework",
            default="latest",
            metavar="VERSION",
            help="Framework version, e.g. 6.0.0-preview.4.21205.3+<commit>, or 'latest' [default: latest]",
        )
        parser.add_argument(
            "-r",
            "--runtime",
            dest="runtimes",
            action="append",
            default=[],
            metavar="RID",
            help="Target runtime identifier, e.g. linux-x64 (repeatable) [default: host]",
        )

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        subparsers.add_parser(
            "list",
            help="List installed SDKs",
            description="List installed SDK versions, targets and artifacts",
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, 1 for user errors, 2 for internal errors)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except UserError as e:
            print_error(str(e))
            return EXIT_USER_ERROR
        except DeveloperError:
            logger.exception("Internal error, please report it")
            return EXIT_DEVELOPER_ERROR

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        DOTNET_DIFF_DEBUG_LOG=1 has the same effect as --verbose.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose or os.environ.get("DOTNET_DIFF_DEBUG_LOG") == "1":
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Settings and the ledger are loaded here. The ledger is saved when the
        command returns, whether it succeeded or not, so that artifacts
        installed before a failure stay recorded.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        module_name = COMMAND_MODULES.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)

        app_dir = ensure_app_structure(get_app_dir())
        settings = load_settings(args.config or get_config_path(app_dir))
        ledger = InstallationLedger.load(get_ledger_path(app_dir))

        context = CommandContext(app_dir=app_dir, settings=settings, ledger=ledger)
        try:
            exit_code = module.run(args, context)
        except BaseException:
            # Keep the command's error; a failed save is only logged.
            try:
                ledger.save()
            except LedgerWriteError as e:
                logger.error(f"Failed to save the ledger: {e}")
            raise

        ledger.save()
        return exit_code


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
