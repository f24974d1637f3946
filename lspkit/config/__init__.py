"""
Configuration for lspkit.
"""

from .settings import (
    DEFAULT_CONFIG_NAME,
    Settings,
    apply_env_overrides,
    load_settings,
    parse_settings,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "Settings",
    "apply_env_overrides",
    "load_settings",
    "parse_settings",
]
