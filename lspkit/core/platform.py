"""
Platform detection for lspkit.

This module detects the current operating system and CPU architecture and
normalizes them into the canonical platform strings used as keys of the
server artifact tables (e.g., 'linux-x64', 'macos-arm64', 'windows-x64').

Usage:
    from lspkit.core.platform import detect_platform

    platform_info = detect_platform()
    print(f"Platform string: {platform_info.platform_string()}")
"""

import functools
import platform
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PlatformInfo:
    """
    Host platform information.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos', or the raw
            lowercased system name for anything else)
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm', 'riscv', ...)
        os_version: OS version string (e.g., '10.0.19041', '6.5.0', '14.1')
    """

    os: str
    arch: str
    os_version: str = ""

    def platform_string(self) -> str:
        """
        Get canonical platform string (e.g., 'linux-x64', 'macos-arm64').

        Example:
            >>> PlatformInfo('linux', 'x64').platform_string()
            'linux-x64'
        """
        return f"{self.os}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def __str__(self) -> str:
        if self.os_version:
            return f"{self.platform_string()} v{self.os_version}"
        return self.platform_string()


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Example:
        >>> platform_info = detect_platform()
        >>> print(f"Running on {platform_info.platform_string()}")
        Running on linux-x64
    """
    return PlatformInfo(
        os=_detect_os(), arch=_detect_architecture(), os_version=_detect_os_version()
    )


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS name: 'windows', 'linux', 'macos', otherwise the
        lowercased value of platform.system()
    """
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    return system


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture: 'x64', 'arm64', 'x86', 'arm'
    """
    return normalize_architecture(platform.machine())


def normalize_architecture(machine: str) -> str:
    """Map a raw machine name to the canonical architecture name."""
    machine = machine.lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    elif machine.startswith("riscv"):
        return "riscv"
    # Unknown architectures pass through unchanged
    return machine


def _detect_os_version() -> str:
    system = platform.system().lower()

    if system == "windows":
        return platform.version()
    elif system == "darwin":
        version = platform.mac_ver()[0]
        return version if version else "unknown"
    return platform.release()


def parse_platform_string(value: str) -> Tuple[str, str]:
    """
    Split a canonical platform string into ``(os, arch)``.

    Raises:
        ValueError: If the string is not of the form '<os>-<arch>'

    Example:
        >>> parse_platform_string('macos-arm64')
        ('macos', 'arm64')
    """
    os_name, sep, arch = value.partition("-")
    if not sep or not os_name or not arch:
        raise ValueError(f"Invalid platform string: {value!r} (expected '<os>-<arch>')")
    return os_name, arch


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to detect_platform() to re-detect.
    Useful for testing or when platform information changes.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "normalize_architecture",
    "parse_platform_string",
    "clear_platform_cache",
]
