"""Overlap detection for half-open time intervals"""

from typing import Iterable, TypeVar

from .schemas import Booking

T = TypeVar("T")


def overlaps(a_start: T, a_end: T, b_start: T, b_end: T) -> bool:
    """
    True when [a_start, a_end) and [b_start, b_end) intersect.

    Back-to-back intervals (a_end == b_start) do not overlap.
    """
    return not (a_end <= b_start or a_start >= b_end)


def find_overlapping(start, end, bookings: Iterable[Booking]) -> list[Booking]:
    """Bookings whose [start_utc, end_utc) intersects [start, end)"""
    return [b for b in bookings if overlaps(start, end, b.start_utc, b.end_utc)]
