"""Shared test fixtures and helpers."""

import asyncio
from datetime import datetime, time, timezone
from typing import Any, Optional

import pytest

from booking_api.background import BackgroundSpawner
from booking_api.domain.scheduling.disabled_dates import DisabledDatesCache
from booking_api.domain.scheduling.repository import BookingRepository
from booking_api.domain.scheduling.schemas import (
    BookingNotice,
    BookRequest,
    BusinessHoursTable,
    BusinessWindow,
    SlotConfig,
)
from booking_api.errors import NotificationFailed
from booking_api.services.record_store import RecordFilter, RecordStore, StoreRecord

BOOKINGS_TABLE = "Bookings"
DISABLED_DATES_TABLE = "DisabledDates"
BUSINESS_TZ = "Europe/Berlin"

# 2025-03-17 is a Monday; Berlin is on CET (UTC+1) until 2025-03-30
MONDAY = "2025-03-17"
TUESDAY = "2025-03-18"
SATURDAY = "2025-03-22"


class FakeRecordStore(RecordStore):
    """In-memory RecordStore with switchable failures"""

    name = "fake"

    def __init__(self):
        super().__init__()
        self.tables: dict[str, list[StoreRecord]] = {}
        self.fail_reads: Optional[Exception] = None
        self.fail_writes: Optional[Exception] = None
        self.calls: list[tuple[str, str]] = []
        self._next_id = 1

    def seed(self, table: str, fields: dict[str, Any], record_id: Optional[str] = None) -> StoreRecord:
        record = StoreRecord(id=record_id or self._new_id(), fields=dict(fields))
        self.tables.setdefault(table, []).append(record)
        return record

    def _new_id(self) -> str:
        record_id = f"rec{self._next_id:04d}"
        self._next_id += 1
        return record_id

    async def list_records(
        self, table: str, record_filter: Optional[RecordFilter] = None
    ) -> list[StoreRecord]:
        self.calls.append(("list", table))
        if self.fail_reads:
            raise self.fail_reads
        records = self.tables.get(table, [])
        if record_filter:
            records = [r for r in records if record_filter.matches(r.fields)]
        return list(records)

    async def find_by_field(self, table: str, field_name: str, value: Any) -> list[StoreRecord]:
        self.calls.append(("find", table))
        if self.fail_reads:
            raise self.fail_reads
        return [r for r in self.tables.get(table, []) if r.fields.get(field_name) == value]

    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        self.calls.append(("create", table))
        # Give concurrent callers a chance to interleave
        await asyncio.sleep(0)
        if self.fail_writes:
            raise self.fail_writes
        return self.seed(table, fields)


class RecordingNotifier:
    def __init__(self):
        self.bookings: list[BookingNotice] = []
        self.contacts: list[dict] = []
        self.autoreplies: list[tuple[str, str]] = []
        self.fail_bookings = False
        self.fail_contacts = False

    async def notify_booking(self, notice: BookingNotice) -> None:
        if self.fail_bookings:
            raise RuntimeError("mail server on fire")
        self.bookings.append(notice)

    async def notify_contact(self, name, email, phone, message, ip) -> None:
        if self.fail_contacts:
            raise NotificationFailed("Failed to send email", operation="send_email")
        self.contacts.append(
            {"name": name, "email": email, "phone": phone, "message": message, "ip": ip}
        )

    async def send_contact_autoreply(self, name: str, email: str) -> None:
        self.autoreplies.append((name, email))


class StaticCaptcha:
    def __init__(self, result: bool = True):
        self.result = result
        self.calls: list[tuple[Optional[str], Optional[str]]] = []

    async def verify(self, token, ip=None) -> bool:
        self.calls.append((token, ip))
        return self.result


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def fixed_utc_now() -> datetime:
    return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def booking_fields(
    start_utc: str,
    end_utc: str,
    status: str = "confirmed",
    key: str = "existing-key",
    **extra,
) -> dict[str, Any]:
    fields = {
        "Name": "Existing Customer",
        "Email": "existing@example.com",
        "Phone": "",
        "StartUTC": start_utc,
        "EndUTC": end_utc,
        "Timezone": BUSINESS_TZ,
        "DurationMin": 20,
        "Status": status,
        "Source": "website",
        "IdempotencyKey": key,
    }
    fields.update(extra)
    return fields


def make_book_request(**overrides) -> BookRequest:
    data = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+49 30 1234567",
        "startLocal": f"{TUESDAY}T15:00",
        "timezone": BUSINESS_TZ,
        "durationMin": 20,
        "idempotencyKey": "key-1",
    }
    data.update(overrides)
    return BookRequest(**data)


@pytest.fixture
def business_hours() -> BusinessHoursTable:
    return BusinessHoursTable(
        days={
            1: BusinessWindow(start=time(15, 0), end=time(17, 0)),
            2: BusinessWindow(start=time(15, 0), end=time(19, 0)),
            3: BusinessWindow(start=time(15, 0), end=time(19, 0)),
            4: BusinessWindow(start=time(14, 0), end=time(19, 0)),
            5: BusinessWindow(start=time(15, 30), end=time(19, 0)),
            6: None,
            7: None,
        }
    )


@pytest.fixture
def slot_config() -> SlotConfig:
    return SlotConfig(duration_minutes=20, step_minutes=30, buffer_minutes=0)


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def repository(store) -> BookingRepository:
    return BookingRepository(store, BOOKINGS_TABLE, DISABLED_DATES_TABLE)


@pytest.fixture
def disabled_dates(repository) -> DisabledDatesCache:
    return DisabledDatesCache(repository, clock=fixed_utc_now)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def spawner() -> BackgroundSpawner:
    return BackgroundSpawner()
