"""
iCalendar (RFC 5545) invitations for confirmed bookings
"""

from datetime import datetime, timezone
from typing import Optional

ICS_FILENAME = "appointment.ics"
ICS_CONTENT_TYPE = "text/calendar"
PRODID = "-//booking-api//Booking Invite//EN"
MAX_LINE_OCTETS = 75


def escape_text(value: str) -> str:
    """Escape a TEXT property value"""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def format_ics_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def fold_line(line: str) -> str:
    """Split content lines longer than 75 octets, continuation lines start with a space"""
    encoded = line.encode("utf-8")
    if len(encoded) <= MAX_LINE_OCTETS:
        return line

    parts = []
    current = ""
    limit = MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = char
            # Continuation lines lose one octet to the leading space
            limit = MAX_LINE_OCTETS - 1
        else:
            current += char
    parts.append(current)
    return "\r\n ".join(parts)


def build_invite(
    uid: str,
    start_utc: datetime,
    end_utc: datetime,
    summary: str,
    description: str,
    organizer_name: str,
    organizer_email: str,
    attendee_email: str,
    attendee_name: Optional[str] = None,
    stamp: Optional[datetime] = None,
) -> str:
    """
    Build a METHOD:REQUEST calendar with a single event.

    Args:
        uid: Globally unique event id, e.g. "<bookingId>@<domain>"
        start_utc: Aware event start
        end_utc: Aware event end
        stamp: DTSTAMP, defaults to now

    Returns:
        ICS document with CRLF line endings
    """
    stamp = stamp or datetime.now(timezone.utc)
    attendee_params = "ROLE=REQ-PARTICIPANT;PARTSTAT=NEEDS-ACTION;RSVP=TRUE"
    if attendee_name:
        attendee_params = f'CN="{attendee_name.replace(chr(34), "")}";{attendee_params}'

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{format_ics_datetime(stamp)}",
        f"DTSTART:{format_ics_datetime(start_utc)}",
        f"DTEND:{format_ics_datetime(end_utc)}",
        f"SUMMARY:{escape_text(summary)}",
        f"DESCRIPTION:{escape_text(description)}",
        f'ORGANIZER;CN="{organizer_name.replace(chr(34), "")}":mailto:{organizer_email}',
        f"ATTENDEE;{attendee_params}:mailto:{attendee_email}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"
