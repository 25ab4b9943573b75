"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import OpsboardConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: OpsboardConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/opsboard/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "opsboard" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .opsboard.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".opsboard.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 30}})
        {'a': 1, 'b': {'x': 10, 'y': 30}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to one bad file
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _set(result: dict[str, Any], section: str, key: str, value: Any) -> None:
    result.setdefault(section, {})
    result[section] = {**result[section], key: value}


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s value '%s', ignoring", name, raw)
        return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        GITHUB_TOKEN - overrides github.token
        GITHUB_ORG - overrides github.org
        GITHUB_REPO - overrides github.repo
        GITHUB_WEBHOOK_SECRET - overrides github.webhook_secret
        OPSBOARD_CACHE_TTL - overrides cache.default_ttl_seconds
        OPSBOARD_STALE_MULTIPLIER - overrides cache.stale_multiplier
        OPSBOARD_DB_PATH - overrides dashboard.db_path

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    for env_name, key in (
        ("GITHUB_TOKEN", "token"),
        ("GITHUB_ORG", "org"),
        ("GITHUB_REPO", "repo"),
        ("GITHUB_WEBHOOK_SECRET", "webhook_secret"),
    ):
        if value := os.environ.get(env_name):
            _set(result, "github", key, value)

    ttl = _env_float("OPSBOARD_CACHE_TTL")
    if ttl is not None:
        if ttl <= 0:
            logger.warning("OPSBOARD_CACHE_TTL must be > 0, got %s, ignoring", ttl)
        else:
            _set(result, "cache", "default_ttl_seconds", ttl)

    multiplier = _env_float("OPSBOARD_STALE_MULTIPLIER")
    if multiplier is not None:
        if multiplier <= 1:
            logger.warning("OPSBOARD_STALE_MULTIPLIER must be > 1, got %s, ignoring", multiplier)
        else:
            _set(result, "cache", "stale_multiplier", multiplier)

    if db_path := os.environ.get("OPSBOARD_DB_PATH"):
        _set(result, "dashboard", "db_path", db_path)

    return result


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> OpsboardConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (GITHUB_*, OPSBOARD_*)
        2. Project config (.opsboard.json)
        3. User config (~/.config/opsboard/config.json)
        4. Model defaults

    Args:
        project_dir: Project directory to load .opsboard.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated OpsboardConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged: dict[str, Any] = {}

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = OpsboardConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
