"""
Caching layer for the aircargo service.

This module contains the key-value store contract, the Valkey client that
implements it, cache key conventions and the JSON cache manager.
"""

from .config import ValkeyConfig, ValkeyConnectionError, ValkeyTimeoutError, ValkeyConfigurationError
from .store import KeyValueStore
from .client import ValkeyClient
from .utils import CacheKeyPrefix, TTLPreset, CacheKeyBuilder, CacheKeyManager, key_manager
from .manager import CacheManager, CacheStats

__all__ = [
    # Configuration
    "ValkeyConfig",
    "ValkeyConnectionError",
    "ValkeyTimeoutError",
    "ValkeyConfigurationError",

    # Store
    "KeyValueStore",
    "ValkeyClient",

    # Manager
    "CacheManager",
    "CacheStats",

    # Utilities
    "CacheKeyPrefix",
    "TTLPreset",
    "CacheKeyBuilder",
    "CacheKeyManager",
    "key_manager",
]
