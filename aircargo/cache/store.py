"""
Key-value store contract used for caching, locking and idempotency.

Implementations raise on transport failure; callers decide whether a
failure is recoverable (cache, ledger) or not (lock acquisition).
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """Async string key-value store with TTLs and an atomic set-if-absent."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        raise NotImplementedError

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``; True if something was deleted."""
        raise NotImplementedError

    @abstractmethod
    async def set_if_absent_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Atomically store ``value`` only if ``key`` does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Atomically delete ``key`` only while it still holds ``value``."""
        raise NotImplementedError
