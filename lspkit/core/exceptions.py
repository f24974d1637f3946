"""
Centralized exception hierarchy for lspkit.

This module defines all custom exceptions used across the codebase
so callers can tell "unsupported", "not found" and "failed with <kind>"
apart without string matching.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class LspKitError(Exception):
    """Base exception for all lspkit errors."""

    pass


# ============================================================================
# Configuration and Registry Exceptions
# ============================================================================


class ConfigError(LspKitError):
    """Configuration parsing or validation error."""

    pass


class RegistryError(LspKitError):
    """Base exception for server registry errors."""

    pass


class UnknownServerError(RegistryError):
    """Raised when a language server is not present in the registry."""

    def __init__(self, server: str):
        self.server = server
        super().__init__(f"Unknown language server: {server}")


# ============================================================================
# Acquisition Exceptions
# ============================================================================


class AcquisitionError(LspKitError):
    """Base exception for locating and installing server binaries."""

    pass


class UnsupportedPlatformError(AcquisitionError):
    """Raised when no artifact exists for the current os/arch/version."""

    def __init__(self, tool_name: str, platform: str):
        self.tool_name = tool_name
        self.platform = platform
        super().__init__(
            f"{tool_name} does not provide a download for platform {platform}"
        )


class ServerNotFoundError(AcquisitionError):
    """Raised when no usable binary was found and no download was permitted."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Failed to find a language server on the system: {tool_name}")


class FetchError(AcquisitionError):
    """Base exception for fetch-verify-install failures."""

    pass


class NetworkError(FetchError):
    """Transport, DNS, TLS or HTTP status failure during a download."""

    pass


class TooManyRedirectsError(NetworkError):
    """Raised when a download exceeds the redirect-hop bound."""

    def __init__(self, url: str, max_redirects: int):
        self.url = url
        self.max_redirects = max_redirects
        super().__init__(f"Exceeded {max_redirects} redirects while fetching {url}")


class HashMismatchError(FetchError):
    """Raised when a downloaded artifact fails the integrity check."""

    def __init__(self, expected: str, actual: str, filename: str = ""):
        self.expected = expected
        self.actual = actual
        self.filename = filename
        subject = f" for {filename}" if filename else ""
        super().__init__(f"Invalid hash{subject}: Expected {expected}, got {actual}.")


class ExtractionError(FetchError):
    """Archive is malformed, unsupported, or could not be unpacked."""

    pass


class CacheWriteError(FetchError):
    """Writing to the installation cache or temporary directory failed."""

    pass


class LockTimeoutError(LspKitError):
    """Raised when an install lock cannot be acquired within its timeout."""

    pass


# ============================================================================
# Supervisor Exceptions
# ============================================================================


class SupervisorError(LspKitError):
    """Base exception for process supervision errors."""

    pass


class LaunchError(SupervisorError):
    """Raised when the server process fails to spawn or exits immediately."""

    pass


class AlreadyRunningError(SupervisorError):
    """Raised when a start is requested while another start is in flight."""

    pass


class NotRunningError(SupervisorError):
    """Raised when accessing the live process of a stopped supervisor."""

    pass
