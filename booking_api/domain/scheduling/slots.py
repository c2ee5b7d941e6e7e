"""
Slot generation.

Pure function: a calendar date, the weekly business-hours table and the
slot configuration in, ordered "HH:MM" start times out. No I/O.
"""

from datetime import date

from .schemas import BusinessHoursTable, SlotConfig
from .time_calculator import format_minutes, minutes_of_day

# Offered start times are snapped forward to this grid so they read cleanly
# even when business hours start off-grid (e.g. 15:10)
SNAP_MINUTES = 30


def snap_forward(minute_of_day: int, grid: int = SNAP_MINUTES) -> int:
    remainder = minute_of_day % grid
    return minute_of_day if remainder == 0 else minute_of_day + (grid - remainder)


def generate_slots(day: date, business_hours: BusinessHoursTable, slot_config: SlotConfig) -> list[str]:
    """
    Candidate local start times for day.

    Walks a cursor from the window start in step_minutes increments while
    cursor + duration + buffer still fits the window. Each cursor is snapped
    forward to the half-hour grid and kept only if the snapped slot still
    ends inside the window. Snapping can repeat a time, so results are
    de-duplicated and sorted.

    A window that starts off-grid can therefore yield no slots at all when
    duration + buffer does not fit after snapping.
    """
    window = business_hours.window_for(day.isoweekday())
    if window is None:
        return []

    window_start = minutes_of_day(window.start)
    window_end = minutes_of_day(window.end)
    duration = slot_config.duration_minutes
    buffer = slot_config.buffer_minutes

    starts: set[int] = set()
    cursor = window_start
    while cursor + duration + buffer <= window_end:
        candidate = snap_forward(cursor)
        if candidate + duration <= window_end:
            starts.add(candidate)
        cursor += slot_config.step_minutes

    return [format_minutes(start) for start in sorted(starts)]
