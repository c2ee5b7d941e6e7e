"""Booking service - validation, idempotency, conflict check and persistence"""

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Protocol

from ...background import BackgroundSpawner
from ...errors import InvalidInput
from ...shared.validators import optional_text, require_text, validate_email
from .overlap import find_overlapping
from .repository import BookingRepository
from .schemas import (
    BookingDraft,
    BookingNotice,
    BookingOutcome,
    BookingResult,
    BookRequest,
    SlotConfig,
)
from .time_calculator import load_zone, local_day_bounds_utc, parse_local_datetime, to_utc

logger = logging.getLogger(__name__)

MAX_DURATION_MINUTES = 480


class BookingNotifier(Protocol):
    async def notify_booking(self, notice: BookingNotice) -> None: ...


@dataclass(frozen=True)
class ValidatedBooking:
    name: str
    email: str
    phone: Optional[str]
    start_local: datetime
    timezone: str
    duration_minutes: int
    idempotency_key: str
    source: str

    @property
    def start_utc(self) -> datetime:
        return to_utc(self.start_local)

    @property
    def end_utc(self) -> datetime:
        return self.start_utc + timedelta(minutes=self.duration_minutes)


class DayLocks:
    """
    Advisory per-day locks for one process.

    Serialises concurrent book() calls touching the same business-local day
    between the conflict check and the write, so overlapping bookings with
    different start times contend too. Workers in other processes are not
    covered.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]


class BookingService:
    """Service layer for booking writes"""

    def __init__(
        self,
        repository: BookingRepository,
        slot_config: SlotConfig,
        business_tz: str,
        notifier: Optional[BookingNotifier] = None,
        spawner: Optional[BackgroundSpawner] = None,
        locks: Optional[DayLocks] = None,
    ):
        self.repository = repository
        self.slot_config = slot_config
        self.business_zone = load_zone(business_tz)
        self.notifier = notifier
        self.spawner = spawner or BackgroundSpawner()
        self.locks = locks or DayLocks()

    def validate(self, request: BookRequest) -> ValidatedBooking:
        """
        Check every field and report all problems at once.

        Raises:
            InvalidInput: With a field -> message map
        """
        errors: dict[str, str] = {}

        def check(field_name: str, func, *args):
            try:
                return func(*args)
            except ValueError as e:
                errors[field_name] = str(e)
                return None

        name = check("name", require_text, request.name, "Name")
        email = check("email", require_text, request.email, "Email", 254)
        if email:
            email = check("email", validate_email, email)
        phone = check("phone", optional_text, request.phone, "Phone", 50)
        idempotency_key = check(
            "idempotencyKey", require_text, request.idempotencyKey, "Idempotency key"
        )
        source = check("source", optional_text, request.source, "Source", 100) or "website"

        zone = check("timezone", load_zone, request.timezone)
        start_local = None
        if not request.startLocal:
            errors["startLocal"] = "Start time is required"
        elif zone is not None:
            start_local = check("startLocal", parse_local_datetime, request.startLocal, zone)

        duration = request.durationMin
        if duration is None:
            duration = self.slot_config.duration_minutes
        elif not 0 < duration <= MAX_DURATION_MINUTES:
            errors["durationMin"] = f"Duration must be between 1 and {MAX_DURATION_MINUTES} minutes"

        if errors:
            logger.info(f"⚠️ Booking request rejected: {errors}")
            raise InvalidInput("Missing or invalid fields", errors)

        return ValidatedBooking(
            name=name,
            email=email,
            phone=phone,
            start_local=start_local,
            timezone=request.timezone,
            duration_minutes=duration,
            idempotency_key=idempotency_key,
            source=source,
        )

    def _business_days(self, booking: ValidatedBooking) -> tuple[date, date]:
        start_day = booking.start_utc.astimezone(self.business_zone).date()
        end_day = (booking.end_utc - timedelta(microseconds=1)).astimezone(self.business_zone).date()
        return start_day, end_day

    def _conflict_window(self, booking: ValidatedBooking) -> tuple[datetime, datetime]:
        """Business-timezone calendar day(s) spanned by the booking, in UTC"""
        start_day, end_day = self._business_days(booking)
        window_start, _ = local_day_bounds_utc(start_day, self.business_zone)
        _, window_end = local_day_bounds_utc(end_day, self.business_zone)
        return window_start, window_end

    async def book(self, request: BookRequest) -> BookingResult:
        """
        Book one slot.

        Steps: idempotency-key lookup, conflict check against non-cancelled
        bookings of the target day, single write, then a fire-and-forget
        notification. Store errors propagate (UpstreamUnavailable, or
        AmbiguousWrite for a timed-out write); nothing is retried here.
        """
        booking = self.validate(request)
        start_utc, end_utc = booking.start_utc, booking.end_utc

        start_day, end_day = self._business_days(booking)
        lock_keys = sorted({start_day.isoformat(), end_day.isoformat()})

        async with AsyncExitStack() as stack:
            # Sorted order keeps two-day bookings from deadlocking
            for key in lock_keys:
                await stack.enter_async_context(self.locks.hold(key))

            existing_id = await self.repository.find_active_id_by_idempotency_key(
                booking.idempotency_key
            )
            if existing_id:
                logger.info(
                    f"🔁 Booking already processed for key {booking.idempotency_key}: {existing_id}"
                )
                return BookingResult(status=BookingOutcome.ALREADY_PROCESSED, booking_id=existing_id)

            window_start, window_end = self._conflict_window(booking)
            existing = await self.repository.list_active_bookings_between(window_start, window_end)
            conflicts = find_overlapping(start_utc, end_utc, existing)
            if conflicts:
                logger.info(
                    f"⛔ Slot {start_utc.isoformat()} conflicts with booking(s) "
                    f"{[b.id for b in conflicts]}"
                )
                return BookingResult(status=BookingOutcome.CONFLICT)

            created = await self.repository.create_booking(
                BookingDraft(
                    name=booking.name,
                    email=booking.email,
                    phone=booking.phone,
                    start_utc=start_utc,
                    end_utc=end_utc,
                    timezone=booking.timezone,
                    duration_minutes=booking.duration_minutes,
                    source=booking.source,
                    idempotency_key=booking.idempotency_key,
                )
            )

        logger.info(f"✅ Booking {created.id} confirmed for {start_utc.isoformat()}")
        self._hand_off_notification(booking, created.id)
        return BookingResult(status=BookingOutcome.BOOKED, booking_id=created.id)

    def _hand_off_notification(self, booking: ValidatedBooking, booking_id: str) -> None:
        if self.notifier is None:
            logger.warning(f"⚠️ No notifier configured; booking {booking_id} sends no email")
            return

        notice = BookingNotice(
            booking_id=booking_id,
            name=booking.name,
            email=booking.email,
            phone=booking.phone,
            start_local=booking.start_local,
            timezone=booking.timezone,
            duration_minutes=booking.duration_minutes,
            start_utc=booking.start_utc,
            end_utc=booking.end_utc,
        )
        self.spawner.spawn(self.notifier.notify_booking, notice, name=f"notify-booking-{booking_id}")
