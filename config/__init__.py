"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    get_store: Function to get the key-value store
"""

from config.settings import settings, get_settings, Settings
from config.storage import (
    get_store,
    KeyValueStore,
    MemoryStore,
    JsonFileStore,
    StoreError,
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Storage
    "get_store",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "StoreError",
]
