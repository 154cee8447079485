# SPDX-License-Identifier: Apache-2.0
"""
Shared configuration loading for vaulttags.

Loads configuration from config.yaml, merged over built-in defaults.

Config file search order (first found wins):
  1. explicit path argument
  2. VAULTTAGS_CONFIG environment variable
  3. ./config.yaml
  4. ~/.config/vaulttags/config.yaml
"""
import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "VAULTTAGS_CONFIG"
USER_CONFIG_PATH = Path.home() / ".config" / "vaulttags" / "config.yaml"

_DEFAULTS: dict[str, Any] = {
    "vault": {
        "root": ".",
        "extensions": [".md"],
        "hidden_prefix": ".",
        # Headers sit at the top of a note, so only this many characters are read
        "prefix_chars": 2048,
        "tag_key": "tags",
        "daily_notes_folder": "zzz_Daily Notes",
        "scan_journal": True,
    },
    "search": {
        "score_cutoff": 60,
        "limit": 50,
    },
    "storage": {
        "storage_dir": "./storage",
        "cache_key": "editorTagIndex",
        "max_age_ms": 24 * 60 * 60 * 1000,
    },
    "logging": {
        "log_file": "vaulttags-mcp.log",
        "max_size_mb": 10,
    },
}

_config_cache: dict[str, Any] | None = None


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge override into base, returning a new dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def find_config_path(config_path: Path | None = None) -> Path | None:
    """Resolve which config file to use, or None when only defaults apply."""
    if config_path is not None:
        return config_path

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    for candidate in (Path("config.yaml"), USER_CONFIG_PATH):
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from a YAML file with defaults.

    Args:
        config_path: Optional path to config file. If None, the search order
                    above is used. Results are cached only when no explicit
                    path is given.

    Returns:
        Configuration dictionary with defaults merged in.

    Raises:
        ValueError: If the config file is not a YAML mapping.
    """
    global _config_cache

    if _config_cache is not None and config_path is None:
        return _config_cache

    path = find_config_path(config_path)

    if path is None or not path.exists():
        if path is not None:
            logger.warning(f"Config file not found at {path}, using defaults")
        result = copy.deepcopy(_DEFAULTS)
    else:
        with open(path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"Config file {path} must contain a YAML mapping")
        logger.info(f"Loaded config from {path}")
        result = _deep_merge(_DEFAULTS, user_config)

    if config_path is None:
        _config_cache = result

    return result


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-notation key.

    Example:
        >>> get('search.score_cutoff')
        60
        >>> get('storage.storage_dir')
        './storage'
    """
    config = load_config()
    value: Any = config
    for k in key.split("."):
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return value


def reload_config() -> dict[str, Any]:
    """Force reload configuration from disk, clearing the cache."""
    global _config_cache
    _config_cache = None
    return load_config()
