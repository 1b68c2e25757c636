"""
Cache manager with error handling and graceful degradation.

Wraps a KeyValueStore with JSON serialisation and turns every store failure
into a miss or a no-op. The cache is an optimisation only: callers never see
a store error from here.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from .store import KeyValueStore
from .utils import TTLPreset, key_manager

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache operation statistics."""

    hit_count: int = 0
    miss_count: int = 0
    error_count: int = 0
    set_count: int = 0
    delete_count: int = 0
    total_response_time_ms: float = 0.0
    total_operations: int = 0
    start_time: datetime = field(default_factory=datetime.now)

    @property
    def hit_ratio(self) -> float:
        """Calculate cache hit ratio."""
        total_reads = self.hit_count + self.miss_count
        return self.hit_count / total_reads if total_reads > 0 else 0.0

    @property
    def avg_response_time_ms(self) -> float:
        return (self.total_response_time_ms / self.total_operations
                if self.total_operations > 0 else 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "error_count": self.error_count,
            "set_count": self.set_count,
            "delete_count": self.delete_count,
            "total_operations": self.total_operations,
            "hit_ratio": self.hit_ratio,
            "avg_response_time_ms": self.avg_response_time_ms,
            "uptime_seconds": (datetime.now() - self.start_time).total_seconds(),
        }


class CacheManager:
    """
    JSON cache over a KeyValueStore with graceful degradation.

    Features:
    - get/set/delete never raise on store failure
    - Hit, miss and error statistics
    """

    def __init__(self, store: KeyValueStore, default_ttl: int = TTLPreset.BOOKING):
        """
        Initialize cache manager.

        Args:
            store: Backing key-value store
            default_ttl: TTL applied when set() is called without one
        """
        self.store = store
        self.default_ttl = int(default_ttl)
        self.key_manager = key_manager
        self.stats = CacheStats()

    async def _execute(self, description: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run a store operation, recording timing and swallowing failures.

        Returns:
            Operation result, or None if the store failed
        """
        start_time = time.time()
        try:
            return await operation()
        except Exception as e:
            self.stats.error_count += 1
            logger.warning(f"Cache {description} failed: {e}")
            return None
        finally:
            self.stats.total_operations += 1
            self.stats.total_response_time_ms += (time.time() - start_time) * 1000

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a JSON value from cache.

        Args:
            key: Cache key

        Returns:
            Decoded value, or None on miss, store failure or undecodable entry
        """
        raw = await self._execute(f"read for key {key}", lambda: self.store.get(key))
        if raw is None:
            self.stats.miss_count += 1
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            self.stats.miss_count += 1
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None

        self.stats.hit_count += 1
        logger.debug(f"Cache hit: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Store a JSON-serialisable value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds, defaults to the manager's default
        """
        ttl = int(ttl or self.default_ttl)
        payload = json.dumps(value, default=str)
        await self._execute(
            f"write for key {key}",
            lambda: self.store.set_with_ttl(key, payload, ttl),
        )
        self.stats.set_count += 1
        logger.debug(f"Cache set: {key} (TTL: {ttl}s)")

    async def delete(self, key: str) -> None:
        """Invalidate a cache entry."""
        await self._execute(f"delete for key {key}", lambda: self.store.delete(key))
        self.stats.delete_count += 1
        logger.debug(f"Cache deleted: {key}")

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.to_dict()
