"""Availability service - offerable slots for one calendar day"""

import logging
from typing import Optional
from zoneinfo import ZoneInfo

from ...errors import InvalidInput, UpstreamUnavailable
from .disabled_dates import DisabledDatesCache
from .overlap import find_overlapping
from .repository import BookingRepository
from .schemas import AvailabilityResult, BusinessHoursTable, SlotConfig, SlotStatus
from .slots import generate_slots
from .time_calculator import (
    load_zone,
    local_day_bounds_utc,
    parse_calendar_date,
    slot_interval_utc,
)

logger = logging.getLogger(__name__)

WEEKEND = (6, 7)
FAILURE_MODES = ("disable", "error")


class AvailabilityService:
    """
    Read-only availability for a date.

    A day is closed on weekends and on administrator-disabled dates.
    Otherwise every generated slot is reported with is_taken set when it
    overlaps a non-cancelled booking.

    When the record store cannot be read the day is never reported as fully
    available: failure_mode "disable" closes the day, "error" raises
    UpstreamUnavailable.
    """

    def __init__(
        self,
        repository: BookingRepository,
        disabled_dates: DisabledDatesCache,
        business_hours: BusinessHoursTable,
        slot_config: SlotConfig,
        business_tz: str,
        failure_mode: str = "disable",
    ):
        if failure_mode not in FAILURE_MODES:
            raise ValueError(f"failure_mode must be one of {FAILURE_MODES}, got {failure_mode!r}")
        self.repository = repository
        self.disabled_dates = disabled_dates
        self.business_hours = business_hours
        self.slot_config = slot_config
        self.zone: ZoneInfo = load_zone(business_tz)
        self.failure_mode = failure_mode

    def _fail_closed(self, date_iso: str, error: UpstreamUnavailable) -> AvailabilityResult:
        if self.failure_mode == "error":
            raise error
        logger.warning(
            f"⚠️ Availability for {date_iso} closed: record store unavailable "
            f"(operation={error.operation}, status={error.upstream_status})"
        )
        return AvailabilityResult(date=date_iso, disabled=True, slots=[], degraded=True)

    async def get_availability(self, date_iso: Optional[str]) -> AvailabilityResult:
        try:
            day = parse_calendar_date(date_iso)
        except ValueError as e:
            raise InvalidInput("date query required in YYYY-MM-DD format", {"date": str(e)}) from None

        if day.isoweekday() in WEEKEND:
            return AvailabilityResult(date=date_iso, disabled=True, slots=[])

        try:
            await self.disabled_dates.ensure_loaded()
        except UpstreamUnavailable as e:
            return self._fail_closed(date_iso, e)

        if self.disabled_dates.contains(date_iso):
            return AvailabilityResult(date=date_iso, disabled=True, slots=[])

        candidates = generate_slots(day, self.business_hours, self.slot_config)
        if not candidates:
            return AvailabilityResult(date=date_iso, disabled=False, slots=[])

        day_start, day_end = local_day_bounds_utc(day, self.zone)
        try:
            bookings = await self.repository.list_active_bookings_between(day_start, day_end)
        except UpstreamUnavailable as e:
            return self._fail_closed(date_iso, e)

        duration = self.slot_config.duration_minutes
        slots = []
        for candidate in candidates:
            start, end = slot_interval_utc(day, candidate, duration, self.zone)
            slots.append(SlotStatus(time=candidate, is_taken=bool(find_overlapping(start, end, bookings))))

        logger.debug(
            f"📅 Availability {date_iso}: {len(slots)} slots, "
            f"{sum(s.is_taken for s in slots)} taken by {len(bookings)} bookings"
        )
        return AvailabilityResult(date=date_iso, disabled=False, slots=slots)
