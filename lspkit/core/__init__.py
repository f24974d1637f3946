"""
Core functionality for lspkit.

This package contains the foundational modules the resolver and supervisor
depend on.
"""

from .directory import (
    get_global_cache_dir,
    get_server_cache_dir,
    get_tool_dir,
    ensure_cache_structure,
    list_installed_tools,
    verify_directory_writable,
)

from .locking import LockManager

from .platform import (
    PlatformInfo,
    detect_platform,
    parse_platform_string,
    clear_platform_cache,
)

from .interfaces import (
    ConfigurationProvider,
    NotificationSink,
    LoggingNotificationSink,
    ProtocolClient,
)

from .exceptions import (
    LspKitError,
    ConfigError,
    RegistryError,
    UnknownServerError,
    AcquisitionError,
    UnsupportedPlatformError,
    ServerNotFoundError,
    FetchError,
    NetworkError,
    TooManyRedirectsError,
    HashMismatchError,
    ExtractionError,
    CacheWriteError,
    LockTimeoutError,
    SupervisorError,
    LaunchError,
    AlreadyRunningError,
    NotRunningError,
)

__all__ = [
    "get_global_cache_dir",
    "get_server_cache_dir",
    "get_tool_dir",
    "ensure_cache_structure",
    "list_installed_tools",
    "verify_directory_writable",
    "LockManager",
    "PlatformInfo",
    "detect_platform",
    "parse_platform_string",
    "clear_platform_cache",
    "ConfigurationProvider",
    "NotificationSink",
    "LoggingNotificationSink",
    "ProtocolClient",
    "LspKitError",
    "ConfigError",
    "RegistryError",
    "UnknownServerError",
    "AcquisitionError",
    "UnsupportedPlatformError",
    "ServerNotFoundError",
    "FetchError",
    "NetworkError",
    "TooManyRedirectsError",
    "HashMismatchError",
    "ExtractionError",
    "CacheWriteError",
    "LockTimeoutError",
    "SupervisorError",
    "LaunchError",
    "AlreadyRunningError",
    "NotRunningError",
]
