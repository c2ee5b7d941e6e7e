"""Booking repository - translates bookings and disabled dates to and from store records"""

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from ...services.record_store import RecordFilter, RecordStore, StoreRecord
from .overlap import overlaps
from .schemas import Booking, BookingDraft, BookingStatus
from .time_calculator import format_utc, parse_utc_instant

logger = logging.getLogger(__name__)

ACTIVE_BOOKINGS = RecordFilter(not_equals={"Status": BookingStatus.CANCELLED.value})


def select_value(value: Any) -> str:
    """Plain text of a field; Baserow single-select fields arrive as {"id", "value"}"""
    if isinstance(value, dict):
        value = value.get("value")
    return str(value or "").strip()


def booking_to_fields(draft: BookingDraft) -> dict[str, Any]:
    return {
        "Name": draft.name,
        "Email": draft.email,
        "Phone": draft.phone or "",
        "StartUTC": format_utc(draft.start_utc),
        "EndUTC": format_utc(draft.end_utc),
        "Timezone": draft.timezone,
        "DurationMin": draft.duration_minutes,
        "Status": draft.status.value,
        "Source": draft.source,
        "IdempotencyKey": draft.idempotency_key,
    }


def booking_from_record(record: StoreRecord) -> Optional[Booking]:
    """Map a store record to a Booking; None when its interval cannot be read"""
    fields = record.fields
    start_utc = parse_utc_instant(fields.get("StartUTC"))
    end_utc = parse_utc_instant(fields.get("EndUTC"))
    if not start_utc or not end_utc:
        logger.warning(f"⚠️ Skipping booking record {record.id}: missing or invalid StartUTC/EndUTC")
        return None

    status = (
        BookingStatus.CANCELLED
        if select_value(fields.get("Status")).lower() == BookingStatus.CANCELLED.value
        else BookingStatus.CONFIRMED
    )

    duration = fields.get("DurationMin")
    if duration in (None, ""):
        duration = int((end_utc - start_utc).total_seconds() // 60)

    try:
        return Booking(
            id=record.id,
            name=str(fields.get("Name") or ""),
            email=str(fields.get("Email") or ""),
            phone=fields.get("Phone") or None,
            start_utc=start_utc,
            end_utc=end_utc,
            timezone=str(fields.get("Timezone") or "UTC"),
            duration_minutes=int(duration),
            status=status,
            source=str(fields.get("Source") or "website"),
            idempotency_key=str(fields.get("IdempotencyKey") or ""),
        )
    except (ValidationError, ValueError, TypeError) as e:
        logger.warning(f"⚠️ Skipping booking record {record.id}: {e}")
        return None


def disabled_date_from_record(record: StoreRecord) -> Optional[str]:
    value = record.fields.get("Date")
    if not value:
        return None
    return str(value)[:10]


class BookingRepository:
    """Repository for bookings and disabled dates held in the record store"""

    def __init__(self, store: RecordStore, bookings_table: str, disabled_dates_table: str):
        self.store = store
        self.bookings_table = bookings_table
        self.disabled_dates_table = disabled_dates_table

    async def list_active_bookings_between(self, start: datetime, end: datetime) -> list[Booking]:
        """Non-cancelled bookings whose interval intersects [start, end)"""
        records = await self.store.list_records(self.bookings_table, ACTIVE_BOOKINGS)
        bookings = []
        for record in records:
            booking = booking_from_record(record)
            if booking is None or booking.status == BookingStatus.CANCELLED:
                continue
            if overlaps(booking.start_utc, booking.end_utc, start, end):
                bookings.append(booking)
        return bookings

    async def find_active_id_by_idempotency_key(self, key: str) -> Optional[str]:
        """Id of the non-cancelled booking written with key, if any"""
        records = await self.store.find_by_field(self.bookings_table, "IdempotencyKey", key)
        for record in records:
            if select_value(record.fields.get("Status")).lower() != BookingStatus.CANCELLED.value:
                return record.id
        return None

    async def create_booking(self, draft: BookingDraft) -> Booking:
        record = await self.store.create_record(self.bookings_table, booking_to_fields(draft))
        return Booking(id=record.id, **draft.model_dump())

    async def list_disabled_dates(self) -> set[str]:
        records = await self.store.list_records(self.disabled_dates_table)
        return {d for d in (disabled_date_from_record(r) for r in records) if d}
