"""Scheduling domain schemas - Pydantic models for configuration, bookings and the API"""

from datetime import datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BusinessWindow(BaseModel):
    """Opening window for one weekday, in business-local time"""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError(f"Business window start {self.start} must be before end {self.end}")
        return self


class BusinessHoursTable(BaseModel):
    """Weekday (1=Monday..7=Sunday) to opening window; None or absent means closed"""

    model_config = ConfigDict(frozen=True)

    days: dict[int, Optional[BusinessWindow]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_weekdays(self):
        unknown = [d for d in self.days if d not in range(1, 8)]
        if unknown:
            raise ValueError(f"Weekdays must be 1..7, got {sorted(unknown)}")
        return self

    def window_for(self, weekday: int) -> Optional[BusinessWindow]:
        return self.days.get(weekday)


class SlotConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    duration_minutes: int = Field(20, gt=0)
    # Candidate generation granularity
    step_minutes: int = Field(30, gt=0)
    # Gap required after a slot before the next may start
    buffer_minutes: int = Field(0, ge=0)


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class BookingDraft(BaseModel):
    """A booking about to be written; the store assigns the id"""

    name: str
    email: str
    phone: Optional[str] = None
    start_utc: datetime
    end_utc: datetime
    timezone: str
    duration_minutes: int
    status: BookingStatus = BookingStatus.CONFIRMED
    source: str = "website"
    idempotency_key: str

    @model_validator(mode="after")
    def check_interval(self):
        if self.start_utc >= self.end_utc:
            raise ValueError("Booking start must be before its end")
        return self


class Booking(BookingDraft):
    id: str


class SlotStatus(BaseModel):
    time: str  # HH:MM, business-local
    is_taken: bool = False


class AvailabilityResult(BaseModel):
    date: str
    disabled: bool
    slots: list[SlotStatus] = Field(default_factory=list)
    # Set when the record store could not be read and the day was closed instead
    degraded: bool = False


class BookingOutcome(str, Enum):
    BOOKED = "booked"
    ALREADY_PROCESSED = "already_processed"
    CONFLICT = "conflict"


class BookingResult(BaseModel):
    status: BookingOutcome
    booking_id: Optional[str] = None


class BookingNotice(BaseModel):
    """What the notification collaborator needs to confirm a booking"""

    booking_id: str
    name: str
    email: str
    phone: Optional[str] = None
    start_local: datetime  # aware, in the requester's timezone
    timezone: str
    duration_minutes: int
    start_utc: datetime
    end_utc: datetime


# ============================================================================
# API SCHEMAS
# ============================================================================


class BookRequest(BaseModel):
    """
    Booking request body.

    Required fields are typed Optional so that BookingService reports every
    missing field at once as InvalidInput rather than failing on the first.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    startLocal: Optional[str] = None  # YYYY-MM-DDTHH:MM in the requester's timezone
    timezone: Optional[str] = None  # IANA zone name
    durationMin: Optional[int] = None
    idempotencyKey: Optional[str] = None
    source: Optional[str] = None


class BookResponse(BaseModel):
    message: str
    bookingId: Optional[str] = None


class AvailabilitySlot(BaseModel):
    time: str
    # Taken by an existing booking; times outside business hours are simply absent
    isDisabled: bool


class AvailabilityResponse(BaseModel):
    date: str
    disabled: bool
    slots: list[AvailabilitySlot]


class RefreshDisabledDatesResponse(BaseModel):
    message: str
    count: int
