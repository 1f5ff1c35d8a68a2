"""Per-room-type admission locks

Admission is read-modify-write: reading overlapping reservations, computing
occupancy and inserting must run as one unit per room type. Display reads
never take these locks.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from domain.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class RoomTypeLockManager:
    """One asyncio.Lock per room type, created on first use"""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, room_type_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_type_id)
        if lock is None:
            lock = self._locks[room_type_id] = asyncio.Lock()
        return lock

    def is_locked(self, room_type_id: str) -> bool:
        lock = self._locks.get(room_type_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, room_type_id: str) -> AsyncIterator[None]:
        """Serialize admissions for a room type; a timeout is retryable"""
        lock = self._lock_for(room_type_id)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Timed out waiting for admission lock on room type %s", room_type_id)
            raise StoreUnavailableError(
                f"Reservations for {room_type_id} are busy, please retry"
            )
        try:
            yield
        finally:
            lock.release()
