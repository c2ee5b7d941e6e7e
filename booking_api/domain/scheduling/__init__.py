"""
Scheduling domain - slot availability and bookings

Layout:
- schemas.py              Business hours, slot config, booking and API models
- time_calculator.py      Date/zone parsing and UTC conversion
- slots.py                Candidate slot generation from business hours
- overlap.py              Half-open interval overlap
- repository.py           Booking and disabled-date records in the record store
- disabled_dates.py       Process-scoped disabled-date cache
- availability_service.py Slots for one day with taken flags
- booking_service.py      Idempotent, conflict-checked booking writes
- router.py               /availability, /book, /admin/refresh-disabled-dates
"""
