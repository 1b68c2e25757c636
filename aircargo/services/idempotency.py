"""
Idempotency ledger for booking creation.

Responses are stored under ``idempotency:{key}`` after a successful creation
and replayed verbatim for repeats of the same key. The ledger is best-effort:
an unreachable store turns lookups into misses and writes into no-ops.
"""

import logging
from typing import Optional

from ..cache.manager import CacheManager
from ..cache.utils import TTLPreset, key_manager
from ..errors import ValidationError
from ..models.booking import BookingResult

logger = logging.getLogger(__name__)


class IdempotencyLedger:
    """Remembers creation responses by caller-supplied key."""

    def __init__(self, cache: CacheManager, ttl_seconds: int = TTLPreset.IDEMPOTENCY):
        self.cache = cache
        self.ttl_seconds = int(ttl_seconds)

    @staticmethod
    def storage_key(idempotency_key: str) -> str:
        """
        Raises:
            ValidationError: Key is empty, too long or contains whitespace
        """
        key = key_manager.idempotency_key(idempotency_key)
        if not idempotency_key or not key_manager.validate_key(key):
            raise ValidationError("Idempotency key must be a non-empty token without whitespace")
        return key

    async def lookup(self, idempotency_key: str) -> Optional[BookingResult]:
        """Return the stored response flagged as a replay, or None."""
        key = self.storage_key(idempotency_key)
        stored = await self.cache.get(key)
        if stored is None:
            return None

        try:
            result = BookingResult.from_response(stored)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable idempotency record {key}: {e}")
            return None

        logger.info(f"Replaying booking {result.booking.ref_id} for idempotency key {idempotency_key}")
        return result

    async def remember(self, idempotency_key: str, result: BookingResult) -> None:
        await self.cache.set(self.storage_key(idempotency_key), result.to_response(), ttl=self.ttl_seconds)
