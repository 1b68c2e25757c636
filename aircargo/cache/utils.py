"""
Cache key naming conventions and TTL presets.

Key formats are shared with other services reading the same store and must
stay exactly as built here.
"""

from enum import Enum
from typing import Any, Dict, Union


class CacheKeyPrefix(str, Enum):
    """Standard cache key prefixes for different data types."""

    BOOKING = "booking"
    ROUTE_SEARCH = "routes"
    IDEMPOTENCY = "idempotency"
    BOOKING_LOCK = "lock:booking"


class TTLPreset(int, Enum):
    """Standard TTL presets in seconds for different data types."""

    BOOKING_LOCK = 30        # crash-recovery safety net, not a timeout
    ROUTE_SEARCH = 1800      # 30 minutes
    BOOKING = 3600           # 1 hour
    IDEMPOTENCY = 86400      # 24 hours


class CacheKeyBuilder:
    """
    Builder class for generating consistent cache keys.
    """

    @staticmethod
    def build_key(prefix: Union[CacheKeyPrefix, str], *parts: Any) -> str:
        """
        Build a cache key with prefix and parts.

        Args:
            prefix: Key prefix (CacheKeyPrefix enum or string)
            *parts: Key parts to join with colons

        Returns:
            str: Generated cache key

        Example:
            build_key(CacheKeyPrefix.ROUTE_SEARCH, "DEL", "BOM", "2024-01-15")
            # Returns: "routes:DEL:BOM:2024-01-15"
        """
        prefix_str = prefix.value if isinstance(prefix, CacheKeyPrefix) else str(prefix)
        key_parts = [prefix_str]

        for part in parts:
            if part is not None:
                key_parts.append(str(part))

        return ":".join(key_parts)


class CacheKeyManager:
    """
    Manager class for cache key generation and validation.
    """

    def __init__(self):
        self.key_builder = CacheKeyBuilder()

    def booking_key(self, ref_id: str) -> str:
        """Generate cache key for a booking aggregate."""
        return self.key_builder.build_key(CacheKeyPrefix.BOOKING, ref_id)

    def route_search_key(self, origin: str, destination: str, date: str) -> str:
        """Generate cache key for direct flight search results."""
        return self.key_builder.build_key(CacheKeyPrefix.ROUTE_SEARCH, origin, destination, date)

    def idempotency_key(self, key: str) -> str:
        """Generate cache key for an idempotency record."""
        return self.key_builder.build_key(CacheKeyPrefix.IDEMPOTENCY, key)

    def booking_lock_key(self, ref_id: str) -> str:
        """Generate the lock key guarding status updates of a booking."""
        return self.key_builder.build_key(CacheKeyPrefix.BOOKING_LOCK, ref_id)

    def validate_key(self, key: str) -> bool:
        """
        Validate cache key format and length.

        Args:
            key: Cache key to validate

        Returns:
            bool: True if key is valid
        """
        if not key or not isinstance(key, str):
            return False

        if len(key) > 250:
            return False

        invalid_chars = ['\n', '\r', '\t', ' ']
        if any(char in key for char in invalid_chars):
            return False

        return True


# Global key manager instance
key_manager = CacheKeyManager()
