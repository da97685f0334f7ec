# OmniTab Utilities Package
"""
Shared utility functions and helpers for OmniTab.
"""

from .helpers import load_settings, get_domain, get_favicon_url

__all__ = ["load_settings", "get_domain", "get_favicon_url"]
