"""
Helper utilities for OmniTab.

Provides common functions used across providers and wiring:
- Settings loading (TOML merged over defaults)
- URL helpers for result secondary text and icons
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import urlsplit

import toml
from loguru import logger

DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "omnitab" / "settings.toml"


def default_settings() -> Dict[str, Any]:
    """Settings used when no file overrides them."""
    return {
        "broker": {
            "request_timeout": 5.0,
        },
        "search": {
            "debounce_ms": 150,
            "initial_command": "tab.search-tab",
        },
        "ranking": {
            "min_score": 30,
            "band_size": 1000,
            "max_results": 50,
            "category_order": ["command", "tab", "history", "bookmark", "topsite"],
        },
        "commands": {
            "disabled": [],
        },
    }


def load_settings(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load palette settings from a TOML file.

    Args:
        path: Settings file, defaults to ~/.config/omnitab/settings.toml

    Returns:
        Dictionary containing settings with defaults applied

    Example settings file:
        [search]
        debounce_ms = 200

        [commands]
        disabled = ["tab.close-all-duplicates"]
    """
    defaults = default_settings()
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH

    if not settings_path.exists():
        logger.debug(f"Settings file not found at {settings_path}, using defaults")
        return defaults

    try:
        loaded = toml.load(settings_path)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning(f"Could not load settings from {settings_path}: {e}. Using defaults")
        return defaults

    return _deep_merge(defaults, loaded)


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary with defaults
        override: Dictionary with overrides

    Returns:
        Merged dictionary (override takes precedence)
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def get_domain(url: str) -> str:
    """Hostname of a URL, or the URL itself when it cannot be parsed."""
    if not url:
        return ""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return url
    return hostname or url


def get_favicon_url(url: str, fallback: Optional[str] = None) -> Optional[str]:
    """Site favicon location (<origin>/favicon.ico)."""
    if not url:
        return fallback
    try:
        parts = urlsplit(url)
    except ValueError:
        return fallback
    if not parts.scheme or not parts.netloc:
        return fallback
    return f"{parts.scheme}://{parts.netloc}/favicon.ico"
