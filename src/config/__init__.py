"""Configuration module for the school permission service."""

from .database import DatabaseSettings, get_database_settings
from .settings import AuthSettings, RedisSettings, Settings, get_settings

__all__ = [
    "AuthSettings",
    "DatabaseSettings",
    "get_database_settings",
    "RedisSettings",
    "Settings",
    "get_settings",
]
