"""Tests for slot generation and interval overlap."""

from datetime import date, datetime, time, timezone

import pytest

from booking_api.domain.scheduling.overlap import overlaps
from booking_api.domain.scheduling.schemas import BusinessHoursTable, BusinessWindow, SlotConfig
from booking_api.domain.scheduling.slots import generate_slots, snap_forward


def single_day_hours(start: time, end: time, weekday: int = 1) -> BusinessHoursTable:
    return BusinessHoursTable(days={weekday: BusinessWindow(start=start, end=end)})


MONDAY = date(2025, 3, 17)


class TestGenerateSlots:
    def test_tuesday_default_hours(self, business_hours, slot_config):
        slots = generate_slots(date(2025, 3, 18), business_hours, slot_config)
        assert slots == ["15:00", "15:30", "16:00", "16:30", "17:00", "17:30", "18:00", "18:30"]

    def test_monday_default_hours(self, business_hours, slot_config):
        slots = generate_slots(MONDAY, business_hours, slot_config)
        assert slots == ["15:00", "15:30", "16:00", "16:30"]

    def test_friday_starts_on_half_hour(self, business_hours, slot_config):
        slots = generate_slots(date(2025, 3, 21), business_hours, slot_config)
        assert slots[0] == "15:30"
        assert slots[-1] == "18:30"
        assert len(slots) == 7

    def test_closed_day_has_no_slots(self, business_hours, slot_config):
        assert generate_slots(date(2025, 3, 22), business_hours, slot_config) == []
        assert generate_slots(date(2025, 3, 23), business_hours, slot_config) == []

    def test_weekday_missing_from_table_is_closed(self, slot_config):
        hours = single_day_hours(time(9, 0), time(12, 0), weekday=3)
        assert generate_slots(MONDAY, hours, slot_config) == []

    def test_off_grid_window_can_yield_nothing(self):
        hours = single_day_hours(time(15, 10), time(15, 40))
        config = SlotConfig(duration_minutes=20, step_minutes=30)
        assert generate_slots(MONDAY, hours, config) == []

    def test_off_grid_start_is_snapped_forward(self):
        hours = single_day_hours(time(15, 10), time(16, 0))
        config = SlotConfig(duration_minutes=20, step_minutes=30)
        assert generate_slots(MONDAY, hours, config) == ["15:30"]

    def test_snapping_duplicates_are_removed(self):
        hours = single_day_hours(time(15, 0), time(16, 0))
        config = SlotConfig(duration_minutes=20, step_minutes=15)
        assert generate_slots(MONDAY, hours, config) == ["15:00", "15:30"]

    def test_buffer_must_fit_before_window_end(self):
        hours = single_day_hours(time(15, 0), time(17, 0))
        config = SlotConfig(duration_minutes=20, step_minutes=30, buffer_minutes=15)
        assert generate_slots(MONDAY, hours, config) == ["15:00", "15:30", "16:00"]

    @pytest.mark.parametrize("duration,step,buffer", [(20, 30, 0), (45, 15, 10), (30, 60, 5)])
    def test_slots_are_sorted_unique_on_grid_and_inside_window(self, duration, step, buffer):
        window = BusinessWindow(start=time(9, 10), end=time(17, 0))
        hours = BusinessHoursTable(days={1: window})
        config = SlotConfig(duration_minutes=duration, step_minutes=step, buffer_minutes=buffer)

        slots = generate_slots(MONDAY, hours, config)

        assert slots == sorted(set(slots))
        for slot in slots:
            start = time.fromisoformat(slot)
            minutes = start.hour * 60 + start.minute
            assert minutes % 30 == 0
            assert minutes >= 9 * 60 + 10
            assert minutes + duration <= 17 * 60


class TestSnapForward:
    def test_on_grid_unchanged(self):
        assert snap_forward(15 * 60) == 15 * 60

    def test_off_grid_rounds_up(self):
        assert snap_forward(15 * 60 + 1) == 15 * 60 + 30
        assert snap_forward(15 * 60 + 31) == 16 * 60


def utc(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 18, hour, minute, tzinfo=timezone.utc)


class TestOverlaps:
    def test_identical_intervals_overlap(self):
        assert overlaps(utc(14), utc(14, 20), utc(14), utc(14, 20))

    def test_partial_overlap(self):
        assert overlaps(utc(14), utc(14, 20), utc(14, 10), utc(14, 30))
        assert overlaps(utc(14, 10), utc(14, 30), utc(14), utc(14, 20))

    def test_containment(self):
        assert overlaps(utc(14), utc(15), utc(14, 20), utc(14, 40))

    def test_back_to_back_does_not_overlap(self):
        assert not overlaps(utc(14), utc(14, 20), utc(14, 20), utc(14, 40))
        assert not overlaps(utc(14, 20), utc(14, 40), utc(14), utc(14, 20))

    def test_zero_length_interval_does_not_overlap(self):
        assert not overlaps(utc(14), utc(14), utc(14), utc(14))

    def test_disjoint(self):
        assert not overlaps(utc(14), utc(14, 20), utc(15), utc(15, 20))

    def test_symmetric(self):
        pairs = [
            (utc(14), utc(14, 20), utc(14, 10), utc(14, 30)),
            (utc(14), utc(14, 20), utc(14, 20), utc(14, 40)),
            (utc(14), utc(16), utc(14, 30), utc(15)),
        ]
        for a_start, a_end, b_start, b_end in pairs:
            assert overlaps(a_start, a_end, b_start, b_end) == overlaps(
                b_start, b_end, a_start, a_end
            )
