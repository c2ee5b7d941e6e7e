"""
Process-scoped cache of administrator-disabled dates.

Loaded at startup and replaced only by an explicit refresh(); nothing
expires it implicitly.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .repository import BookingRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DisabledDatesCache:
    def __init__(self, repository: BookingRepository, clock: Clock = utc_now):
        self.repository = repository
        self.clock = clock
        self._dates: frozenset[str] = frozenset()
        self.loaded_at: Optional[datetime] = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self.loaded_at is not None

    def __len__(self) -> int:
        return len(self._dates)

    def contains(self, date_iso: str) -> bool:
        return date_iso in self._dates

    def snapshot(self) -> frozenset[str]:
        return self._dates

    async def refresh(self) -> int:
        """
        Reload disabled dates from the record store.

        On failure the previous set is kept and the error propagates.

        Returns:
            Number of disabled dates now cached
        """
        async with self._lock:
            dates = await self.repository.list_disabled_dates()
            self._dates = frozenset(dates)
            self.loaded_at = self.clock()
        logger.info(f"📅 Loaded {len(self._dates)} disabled dates: {sorted(self._dates)}")
        return len(self._dates)

    async def ensure_loaded(self) -> None:
        """Load once if the startup load did not succeed"""
        if not self.is_loaded:
            await self.refresh()
