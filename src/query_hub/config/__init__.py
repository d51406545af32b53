"""Configuration management for QueryHub.

Configuration is loaded from environment variables (``QH_`` prefix) and an
optional ``.env`` file, validated with Pydantic BaseSettings.

Usage:
    >>> from query_hub.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.DATABASE_URL)
"""

from query_hub.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
