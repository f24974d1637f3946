"""
lspkit CLI argument parser.

This module implements the command-line interface for lspkit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from lspkit.core.exceptions import LspKitError

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("lspkit")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """lspkit command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="lspkit",
            description="lspkit - Language server installer and supervisor",
            epilog='Use "lspkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"lspkit {__version__}"
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
            help="Path to configuration file (default: ./lspkit.yaml)",
        )
        parser.add_argument(
            "--cache-dir",
            type=Path,
            metavar="DIR",
            help="Installation cache root (default: ~/.lspkit/servers)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_servers_command(subparsers)
        self._add_resolve_command(subparsers)
        self._add_install_command(subparsers)
        self._add_run_command(subparsers)
        self._add_doctor_command(subparsers)
        self._add_cleanup_command(subparsers)

        return parser

    @staticmethod
    def _add_server_option(parser):
        parser.add_argument(
            "--server",
            metavar="NAME",
            help="Language server name (default: from configuration)",
        )

    def _add_servers_command(self, subparsers):
        """Add 'servers' subcommand."""
        subparsers.add_parser(
            "servers",
            help="List known language servers",
            description="List registered language servers and their platform support",
        )

    def _add_resolve_command(self, subparsers):
        """Add 'resolve' subcommand."""
        parser = subparsers.add_parser(
            "resolve",
            help="Show which server binary would be used",
            description="Resolve the server binary from configuration, cache, or PATH",
        )
        self._add_server_option(parser)

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Download and install a language server",
            description="Fetch, verify and install the server for this platform",
        )
        self._add_server_option(parser)
        parser.add_argument(
            "--force",
            action="store_true",
            help="Reinstall even if the server is already in the cache",
        )

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Run a language server over this process's stdio",
            description=(
                "Start the language server (installing it if permitted) and relay "
                "LSP traffic between this process's stdin/stdout and the server"
            ),
        )
        self._add_server_option(parser)
        parser.add_argument(
            "--no-download",
            action="store_true",
            help="Never download the server, even if configuration allows it",
        )

    def _add_doctor_command(self, subparsers):
        """Add 'doctor' subcommand."""
        parser = subparsers.add_parser(
            "doctor",
            help="Diagnose the server setup",
            description="Report platform, cache, support and resolution details",
        )
        self._add_server_option(parser)

    def _add_cleanup_command(self, subparsers):
        """Add 'cleanup' subcommand."""
        parser = subparsers.add_parser(
            "cleanup",
            help="Remove installed servers from the cache",
            description="Remove installed servers and stale lock files",
        )
        group = parser.add_mutually_exclusive_group()
        group.add_argument("--server", metavar="NAME", help="Server to remove")
        group.add_argument(
            "--all", action="store_true", help="Remove every installed server"
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be removed without deleting",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except LspKitError as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Logs go to stderr so ``lspkit run`` keeps stdout for LSP traffic.
        """
        if args.verbose:
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
            stream=sys.stderr,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Returns:
            Exit code from command handler
        """
        command_map = {
            "servers": "lspkit.cli.commands.servers",
            "resolve": "lspkit.cli.commands.resolve",
            "install": "lspkit.cli.commands.install",
            "run": "lspkit.cli.commands.run",
            "doctor": "lspkit.cli.commands.doctor",
            "cleanup": "lspkit.cli.commands.cleanup",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
