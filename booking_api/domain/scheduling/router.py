"""Scheduling router - availability, booking and disabled-date endpoints"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from ...errors import SlotConflict
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .disabled_dates import DisabledDatesCache
from .schemas import (
    AvailabilityResponse,
    AvailabilitySlot,
    BookingOutcome,
    BookRequest,
    BookResponse,
    RefreshDisabledDatesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_availability_service(request: Request) -> AvailabilityService:
    return request.app.state.availability_service


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def get_disabled_dates(request: Request) -> DisabledDatesCache:
    return request.app.state.disabled_dates


def require_admin_token(
    request: Request, x_admin_token: Optional[str] = Header(None)
) -> None:
    """Checks X-Admin-Token when an admin token is configured"""
    expected = request.app.state.admin_token
    if not expected:
        return
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        logger.warning("🔒 Rejected disabled-dates refresh: bad admin token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/availability", response_model=AvailabilityResponse)
@router.get("/api/availability", response_model=AvailabilityResponse, include_in_schema=False)
async def get_availability(
    date: Optional[str] = Query(None, description="Calendar date, YYYY-MM-DD"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Offerable slots for one day; isDisabled marks slots taken by a booking"""
    result = await service.get_availability(date)
    if result.degraded:
        logger.warning(f"⚠️ GET availability {result.date}: served degraded closed day")
    return AvailabilityResponse(
        date=result.date,
        disabled=result.disabled,
        slots=[AvailabilitySlot(time=s.time, isDisabled=s.is_taken) for s in result.slots],
    )


# ============================================================================
# BOOKING
# ============================================================================


@router.post("/book", response_model=BookResponse, response_model_exclude_none=True)
@router.post(
    "/api/book",
    response_model=BookResponse,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def book(
    data: BookRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Book a slot; replays with the same idempotencyKey return the original booking"""
    result = await service.book(data)

    if result.status == BookingOutcome.CONFLICT:
        raise SlotConflict("Slot already taken")
    if result.status == BookingOutcome.ALREADY_PROCESSED:
        return BookResponse(message="Already processed", bookingId=result.booking_id)
    return BookResponse(message="booked", bookingId=result.booking_id)


# ============================================================================
# ADMIN
# ============================================================================


@router.post(
    "/admin/refresh-disabled-dates",
    response_model=RefreshDisabledDatesResponse,
    dependencies=[Depends(require_admin_token)],
)
@router.get(
    "/admin/refresh-disabled-dates",
    response_model=RefreshDisabledDatesResponse,
    dependencies=[Depends(require_admin_token)],
    include_in_schema=False,
)
async def refresh_disabled_dates(cache: DisabledDatesCache = Depends(get_disabled_dates)):
    """Reload administrator-disabled dates from the record store"""
    count = await cache.refresh()
    return RefreshDisabledDatesResponse(message="Disabled dates refreshed", count=count)
