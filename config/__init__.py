"""Application configuration utilities."""

from .settings import DEFAULT_LOG_LEVEL, Settings, get_settings

__all__ = [
    "DEFAULT_LOG_LEVEL",
    "Settings",
    "get_settings",
]
