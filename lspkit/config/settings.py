"""YAML settings for lspkit.

This module loads ``lspkit.yaml`` and applies environment overrides.

Example lspkit.yaml:

    language_server: Swift-MesonLSP
    language_server_path: null
    download_language_server: true
    cache_dir: ~/.cache/lspkit
    download_timeout: 30
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from lspkit.core.directory import CACHE_DIR_ENV
from lspkit.core.exceptions import ConfigError
from lspkit.core.interfaces import ConfigurationProvider
from lspkit.servers.registry import DEFAULT_SERVER

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "lspkit.yaml"

ENV_SERVER_PATH = "LSPKIT_LANGUAGE_SERVER_PATH"
ENV_DISABLE_DOWNLOAD = "LSPKIT_DISABLE_DOWNLOAD"

_KNOWN_KEYS = {
    "language_server",
    "language_server_path",
    "download_language_server",
    "cache_dir",
    "download_timeout",
}


@dataclass
class Settings(ConfigurationProvider):
    """Complete lspkit settings."""

    language_server: str = DEFAULT_SERVER
    language_server_path: Optional[str] = None
    download_language_server: bool = True
    cache_dir: Optional[str] = None
    download_timeout: int = 30

    def override_path(self) -> Optional[str]:
        return self.language_server_path or None

    def download_allowed(self) -> bool:
        return self.download_language_server


def parse_settings(data: Optional[Dict[str, Any]]) -> Settings:
    """
    Validate a settings mapping.

    Raises:
        ConfigError: If a value has the wrong type
    """
    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(sorted(unknown))}")

    settings = Settings()

    if "language_server" in data:
        value = data["language_server"]
        if not isinstance(value, str) or not value:
            raise ConfigError("'language_server' must be a non-empty string")
        settings.language_server = value

    for key in ("language_server_path", "cache_dir"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"'{key}' must be a string or null")
        setattr(settings, key, value or None)

    if "download_language_server" in data:
        value = data["download_language_server"]
        if not isinstance(value, bool):
            raise ConfigError("'download_language_server' must be true or false")
        settings.download_language_server = value

    if "download_timeout" in data:
        value = data["download_timeout"]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError("'download_timeout' must be a positive integer")
        settings.download_timeout = value

    return settings


def apply_env_overrides(settings: Settings, env: Mapping[str, str]) -> Settings:
    """Apply LSPKIT_* environment variables on top of file settings."""
    if env.get(ENV_SERVER_PATH):
        settings.language_server_path = env[ENV_SERVER_PATH]
    if env.get(CACHE_DIR_ENV):
        settings.cache_dir = env[CACHE_DIR_ENV]
    if env.get(ENV_DISABLE_DOWNLOAD, "").strip().lower() in {"1", "true", "yes"}:
        settings.download_language_server = False
    return settings


def load_settings(
    config_path: Optional[Path] = None,
    search_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from YAML and the environment.

    Args:
        config_path: Explicit settings file (must exist)
        search_dir: Directory searched for lspkit.yaml when no path is given
        env: Environment mapping (os.environ if None)

    Returns:
        Parsed settings; defaults when no file is present

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable or invalid
    """
    if config_path is None:
        candidate = Path(search_dir or Path.cwd()) / DEFAULT_CONFIG_NAME
        config_path = candidate if candidate.exists() else None
    elif not Path(config_path).exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    data = None
    if config_path is not None:
        logger.debug(f"Loading configuration from {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read {config_path}: {e}") from e

    settings = parse_settings(data)
    return apply_env_overrides(settings, os.environ if env is None else env)
