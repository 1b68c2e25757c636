"""
Per-booking distributed lock built on an atomic set-if-absent.

Each acquisition stores a fresh holder token as the lock value, and release
only deletes the key while it still holds that token, so a holder whose lock
expired cannot remove a lock granted to someone else afterwards.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional

from ..cache.store import KeyValueStore
from ..cache.utils import TTLPreset, key_manager
from ..errors import ConflictError, InternalError

logger = logging.getLogger(__name__)


@dataclass
class LockInfo:
    """Information about a held booking lock."""
    lock_key: str
    lock_value: str
    acquired_at: datetime
    expires_at: datetime
    ttl_seconds: int


class LockCoordinator:
    """
    Mutual exclusion for booking status updates.

    Features:
    - Single attempt acquisition: contention fails immediately
    - TTL on every lock as a crash-recovery safety net
    - Holder-scoped release via compare-and-delete
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: int = TTLPreset.BOOKING_LOCK):
        """
        Initialize lock coordinator.

        Args:
            store: Key-value store holding the lock keys
            ttl_seconds: Lifetime of an unreleased lock
        """
        self.store = store
        self.ttl_seconds = int(ttl_seconds)
        self.instance_id = uuid.uuid4().hex[:8]

    async def acquire(self, ref_id: str) -> Optional[LockInfo]:
        """
        Try once to take the lock for a booking.

        Returns:
            LockInfo if the lock was granted, None if another holder has it

        Raises:
            InternalError: The store could not be reached
        """
        lock_key = key_manager.booking_lock_key(ref_id)
        lock_value = f"{self.instance_id}:{uuid.uuid4().hex}"

        try:
            acquired = await self.store.set_if_absent_with_ttl(lock_key, lock_value, self.ttl_seconds)
        except Exception as e:
            logger.error(f"Error acquiring lock {lock_key}: {e}")
            raise InternalError(f"Lock store unavailable for booking {ref_id}") from e

        if not acquired:
            logger.info(f"Lock contention on {lock_key}")
            return None

        acquired_at = datetime.now()
        logger.debug(f"Lock acquired: {lock_key}")
        return LockInfo(
            lock_key=lock_key,
            lock_value=lock_value,
            acquired_at=acquired_at,
            expires_at=acquired_at + timedelta(seconds=self.ttl_seconds),
            ttl_seconds=self.ttl_seconds,
        )

    async def release(self, lock_info: LockInfo) -> bool:
        """
        Release a lock if this holder still owns it.

        Returns:
            True if the lock key was deleted, False otherwise
        """
        try:
            released = await self.store.delete_if_equals(lock_info.lock_key, lock_info.lock_value)
        except Exception as e:
            logger.warning(f"Error releasing lock {lock_info.lock_key}: {e}")
            return False

        if released:
            logger.debug(f"Lock released: {lock_info.lock_key}")
        else:
            logger.warning(f"Lock release skipped (expired or not owner): {lock_info.lock_key}")
        return released

    @asynccontextmanager
    async def lock_context(self, ref_id: str) -> AsyncIterator[LockInfo]:
        """
        Hold the booking lock for the duration of the block.

        Usage:
            async with coordinator.lock_context(ref_id):
                # read, validate and append while no one else can
                pass

        Raises:
            ConflictError: Another update holds the lock
        """
        lock_info = await self.acquire(ref_id)
        if lock_info is None:
            raise ConflictError(f"Booking {ref_id} is being updated by another request")

        try:
            yield lock_info
        finally:
            await self.release(lock_info)
