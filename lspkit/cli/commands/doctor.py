"""
Doctor command for diagnosing the language server setup.

Checks the host platform, the installation cache, whether the selected
server can be auto-installed here, and which binary would be launched.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from lspkit.cli.utils import CommandContext, build_context
from lspkit.core.directory import list_installed_tools, verify_directory_writable
from lspkit.core.filesystem import is_executable_file

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of a health check."""

    name: str
    passed: bool
    message: str
    fix_command: Optional[str] = None
    critical: bool = True


class SetupChecker:
    """Run health checks for one configured server."""

    def __init__(self, context: CommandContext):
        self.context = context

    def check_platform(self) -> CheckResult:
        platform = self.context.resolver.platform
        return CheckResult(
            name="Platform",
            passed=True,
            message=f"{platform.platform_string()} {platform.os_version}".rstrip(),
        )

    def check_cache(self) -> CheckResult:
        """
        Check that the installation cache is writable.

        A missing cache root passes; it is created on the first install.
        """
        cache_dir = self.context.resolver.cache_dir
        if not cache_dir.exists():
            return CheckResult(
                name="Cache",
                passed=True,
                message=f"{cache_dir} (not created yet)",
            )
        if verify_directory_writable(cache_dir):
            installed = list_installed_tools(cache_dir)
            summary = ", ".join(installed) if installed else "nothing installed"
            return CheckResult(name="Cache", passed=True, message=f"{cache_dir} ({summary})")
        return CheckResult(
            name="Cache",
            passed=False,
            message=f"{cache_dir} is not writable",
            fix_command="Set LSPKIT_CACHE_DIR or cache_dir to a writable directory",
        )

    def check_support(self) -> CheckResult:
        identity = self.context.identity
        resolver = self.context.resolver
        if resolver.supports_system(identity):
            descriptor = resolver.artifact_for(identity)
            return CheckResult(
                name="Download",
                passed=True,
                message=f"{identity.name} {identity.version} from {descriptor.url}",
            )
        fix = f"See {identity.setup_url}" if identity.setup_url else None
        return CheckResult(
            name="Download",
            passed=False,
            message=(
                f"No automatic install of {identity.name} for "
                f"{resolver.platform.platform_string()}"
            ),
            fix_command=fix,
            critical=False,
        )

    def check_binary(self) -> CheckResult:
        context = self.context
        binary = context.resolver.resolve_local(
            context.identity, context.settings.override_path()
        )
        if binary is not None:
            if not binary.path.exists():
                return CheckResult(
                    name="Binary",
                    passed=False,
                    message=f"Configured path {binary.path} does not exist",
                    fix_command="Fix language_server_path in the configuration",
                )
            if not is_executable_file(binary.path):
                return CheckResult(
                    name="Binary",
                    passed=False,
                    message=f"{binary.path} is not an executable file",
                    fix_command=f"chmod +x {binary.path}",
                )
            return CheckResult(
                name="Binary",
                passed=True,
                message=f"{binary.path} ({binary.provenance.value})",
            )

        if not context.settings.download_allowed():
            fix = "Enable download_language_server or set language_server_path"
        elif context.resolver.supports_system(context.identity):
            fix = "lspkit install"
        else:
            fix = "Install the server manually and set language_server_path"
        return CheckResult(
            name="Binary",
            passed=False,
            message=f"{context.identity.name} not found",
            fix_command=fix,
        )

    def run_all_checks(self) -> List[CheckResult]:
        return [
            self.check_platform(),
            self.check_cache(),
            self.check_support(),
            self.check_binary(),
        ]


def run(args) -> int:
    """
    Run the doctor command.

    Returns:
        Exit code (0 if no critical check failed, 1 otherwise)
    """
    context = build_context(args)
    results = SetupChecker(context).run_all_checks()

    print(f"Diagnosing {context.identity.display_name}...\n")
    failed = 0
    for result in results:
        if result.passed:
            print(f"[OK]   {result.name}: {result.message}")
            continue
        if result.critical:
            failed += 1
            print(f"[FAIL] {result.name}: {result.message}")
        else:
            print(f"[WARN] {result.name}: {result.message}")
        if result.fix_command:
            print(f"       Fix: {result.fix_command}")

    if failed:
        print(f"\nFound {failed} issue(s) that need attention")
        return 1

    print("\nSetup is healthy")
    return 0
