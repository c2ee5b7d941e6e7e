"""Tests for record <-> booking mapping and repository queries."""

from datetime import datetime, timezone

from booking_api.domain.scheduling.repository import (
    booking_from_record,
    booking_to_fields,
    disabled_date_from_record,
)
from booking_api.domain.scheduling.schemas import BookingDraft, BookingStatus
from booking_api.services.record_store import StoreRecord
from conftest import BOOKINGS_TABLE, booking_fields


class TestMapping:
    def test_draft_to_fields(self):
        draft = BookingDraft(
            name="Ada",
            email="ada@example.com",
            start_utc=datetime(2025, 3, 18, 14, 0, tzinfo=timezone.utc),
            end_utc=datetime(2025, 3, 18, 14, 20, tzinfo=timezone.utc),
            timezone="Europe/Berlin",
            duration_minutes=20,
            idempotency_key="k1",
        )

        fields = booking_to_fields(draft)

        assert fields == {
            "Name": "Ada",
            "Email": "ada@example.com",
            "Phone": "",
            "StartUTC": "2025-03-18T14:00:00.000Z",
            "EndUTC": "2025-03-18T14:20:00.000Z",
            "Timezone": "Europe/Berlin",
            "DurationMin": 20,
            "Status": "confirmed",
            "Source": "website",
            "IdempotencyKey": "k1",
        }

    def test_record_to_booking(self):
        record = StoreRecord("rec1", booking_fields("2025-03-18T14:00:00.000Z", "2025-03-18T14:20:00.000Z"))

        booking = booking_from_record(record)

        assert booking.id == "rec1"
        assert booking.start_utc == datetime(2025, 3, 18, 14, 0, tzinfo=timezone.utc)
        assert booking.status == BookingStatus.CONFIRMED

    def test_baserow_single_select_status(self):
        fields = booking_fields("2025-03-18T14:00:00Z", "2025-03-18T14:20:00Z")
        fields["Status"] = {"id": 3, "value": "cancelled", "color": "red"}

        booking = booking_from_record(StoreRecord("1", fields))

        assert booking.status == BookingStatus.CANCELLED

    def test_missing_duration_is_derived(self):
        fields = booking_fields("2025-03-18T14:00:00Z", "2025-03-18T14:45:00Z", DurationMin=None)

        assert booking_from_record(StoreRecord("1", fields)).duration_minutes == 45

    def test_inverted_interval_is_skipped(self):
        fields = booking_fields("2025-03-18T15:00:00Z", "2025-03-18T14:00:00Z")

        assert booking_from_record(StoreRecord("1", fields)) is None

    def test_disabled_date_takes_calendar_part(self):
        assert disabled_date_from_record(StoreRecord("1", {"Date": "2025-12-24T00:00:00.000Z"})) == "2025-12-24"
        assert disabled_date_from_record(StoreRecord("2", {})) is None


class TestBookingRepository:
    async def test_idempotency_lookup_ignores_cancelled(self, repository, store):
        store.seed(BOOKINGS_TABLE, booking_fields("2025-03-18T14:00:00Z", "2025-03-18T14:20:00Z", status="cancelled", key="k"))
        assert await repository.find_active_id_by_idempotency_key("k") is None

        active = store.seed(BOOKINGS_TABLE, booking_fields("2025-03-18T15:00:00Z", "2025-03-18T15:20:00Z", key="k"))
        assert await repository.find_active_id_by_idempotency_key("k") == active.id

    async def test_list_between_filters_by_interval(self, repository, store):
        inside = store.seed(BOOKINGS_TABLE, booking_fields("2025-03-18T14:00:00Z", "2025-03-18T14:20:00Z"))
        store.seed(BOOKINGS_TABLE, booking_fields("2025-03-19T14:00:00Z", "2025-03-19T14:20:00Z"))

        bookings = await repository.list_active_bookings_between(
            datetime(2025, 3, 17, 23, 0, tzinfo=timezone.utc),
            datetime(2025, 3, 18, 23, 0, tzinfo=timezone.utc),
        )

        assert [b.id for b in bookings] == [inside.id]
