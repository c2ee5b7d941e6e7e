import os
from datetime import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .domain.scheduling.schemas import BusinessHoursTable, BusinessWindow, SlotConfig
from .errors import ConfigurationError

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid integer for {env_var}: {raw!r}") from None


def _flag(env_var: str, default: str = "false") -> bool:
    return os.getenv(env_var, default).strip().lower() == "true"


# Business calendar
BUSINESS_TZ = os.getenv("BUSINESS_TZ", "Europe/Berlin")
BUSINESS_NAME = os.getenv("BUSINESS_NAME", "Webwing")
BUSINESS_DOMAIN = os.getenv("BUSINESS_DOMAIN", "webwing.agency")

# Weekly hours as "HH:MM-HH:MM"; empty or "closed" means no bookings that day
DEFAULT_BUSINESS_HOURS = {
    1: "15:00-17:00",
    2: "15:00-19:00",
    3: "15:00-19:00",
    4: "14:00-19:00",
    5: "15:30-19:00",
    6: "closed",
    7: "closed",
}
WEEKDAY_ENV_NAMES = {1: "MON", 2: "TUE", 3: "WED", 4: "THU", 5: "FRI", 6: "SAT", 7: "SUN"}

# Slot generation
SLOT_DURATION_MIN = _safe_int("SLOT_DURATION_MIN", "20")
STEP_MIN = _safe_int("STEP_MIN", "30")
BUFFER_MIN = _safe_int("BUFFER_MIN", "0")

# "disable" answers a store outage with a closed day, "error" with a 503
AVAILABILITY_FAILURE_MODE = os.getenv("AVAILABILITY_FAILURE_MODE", "disable").strip().lower()

# Record store (Airtable or Baserow)
RECORD_STORE_BACKEND = os.getenv("RECORD_STORE_BACKEND", "airtable").strip().lower()
RECORD_STORE_TIMEOUT_SECONDS = float(os.getenv("RECORD_STORE_TIMEOUT_SECONDS", "10"))

AIRTABLE_API_KEY = os.getenv("AIRTABLE_API_KEY")
AIRTABLE_BASE_ID = os.getenv("AIRTABLE_BASE_ID")
AIRTABLE_BOOKINGS_TABLE = os.getenv("AIRTABLE_BOOKINGS_TABLE", "Bookings")
AIRTABLE_DISABLED_DATES_TABLE = os.getenv("AIRTABLE_DISABLED_DATES_TABLE", "DisabledDates")

BASEROW_API_URL = os.getenv("BASEROW_API_URL", "https://api.baserow.io")
BASEROW_TOKEN = os.getenv("BASEROW_TOKEN")
BASEROW_BOOKINGS_TABLE_ID = os.getenv("BASEROW_BOOKINGS_TABLE_ID")
BASEROW_DISABLED_DATES_TABLE_ID = os.getenv("BASEROW_DISABLED_DATES_TABLE_ID")

# Outbound mail: SMTP first, Resend as secondary transport
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = _safe_int("SMTP_PORT", "587")
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASS = os.getenv("SMTP_PASS")
SMTP_SECURE = _flag("SMTP_SECURE")
FROM_EMAIL = os.getenv("FROM_EMAIL", "contact@webwing.agency")
CONTACT_NOTIFICATION_EMAIL = os.getenv("CONTACT_NOTIFICATION_EMAIL") or FROM_EMAIL
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_SEND_ATTEMPTS = _safe_int("EMAIL_SEND_ATTEMPTS", "2")
EMAIL_RETRY_BACKOFF_MS = _safe_int("EMAIL_RETRY_BACKOFF_MS", "400")

# Cloudflare Turnstile
TURNSTILE_SECRET = os.getenv("TURNSTILE_SECRET")
ALLOW_CONTACT_NO_CAPTCHA = _flag("ALLOW_CONTACT_NO_CAPTCHA")

# Contact form rate limiting (fixed window per client IP)
CONTACT_RATE_LIMIT = _safe_int("CONTACT_RATE_LIMIT", "6")
CONTACT_RATE_WINDOW_SECONDS = _safe_int("CONTACT_RATE_WINDOW_SECONDS", "60")
REDIS_URL = os.getenv("REDIS_URL")

# Guards the disabled-dates refresh endpoint when set
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS", "https://webwing.agency,http://localhost:5173,http://localhost:8888"
    ).split(",")
    if origin.strip()
]


def parse_hours_window(raw: Optional[str]) -> Optional[BusinessWindow]:
    """
    Parse a "HH:MM-HH:MM" business window.

    Returns None for an empty value or "closed".

    Raises:
        ValueError: If the value is malformed or start is not before end
    """
    if raw is None or not raw.strip() or raw.strip().lower() == "closed":
        return None

    try:
        start_raw, end_raw = raw.strip().split("-")
        start = time.fromisoformat(start_raw.strip())
        end = time.fromisoformat(end_raw.strip())
    except ValueError:
        raise ValueError(f"Invalid business hours window: {raw!r}") from None

    return BusinessWindow(start=start, end=end)


def load_business_hours() -> BusinessHoursTable:
    """Build the weekly business-hours table from BUSINESS_HOURS_<DAY> variables"""
    days = {}
    for weekday, suffix in WEEKDAY_ENV_NAMES.items():
        env_var = f"BUSINESS_HOURS_{suffix}"
        raw = os.getenv(env_var, DEFAULT_BUSINESS_HOURS[weekday])
        try:
            days[weekday] = parse_hours_window(raw)
        except ValueError as e:
            raise ValueError(f"{env_var}: {e}") from None
    return BusinessHoursTable(days=days)


def load_slot_config() -> SlotConfig:
    """Build the slot configuration from SLOT_DURATION_MIN, STEP_MIN and BUFFER_MIN"""
    return SlotConfig(
        duration_minutes=SLOT_DURATION_MIN,
        step_minutes=STEP_MIN,
        buffer_minutes=BUFFER_MIN,
    )


def require_record_store_config() -> None:
    """
    Fail startup when the selected record store has no credentials.

    Raises:
        ConfigurationError: If the backend is unknown or its credentials are missing
    """
    if RECORD_STORE_BACKEND == "airtable":
        missing = [
            name
            for name, value in (
                ("AIRTABLE_API_KEY", AIRTABLE_API_KEY),
                ("AIRTABLE_BASE_ID", AIRTABLE_BASE_ID),
            )
            if not value
        ]
    elif RECORD_STORE_BACKEND == "baserow":
        missing = [
            name
            for name, value in (
                ("BASEROW_TOKEN", BASEROW_TOKEN),
                ("BASEROW_BOOKINGS_TABLE_ID", BASEROW_BOOKINGS_TABLE_ID),
                ("BASEROW_DISABLED_DATES_TABLE_ID", BASEROW_DISABLED_DATES_TABLE_ID),
            )
            if not value
        ]
    else:
        raise ConfigurationError(f"Unknown RECORD_STORE_BACKEND: {RECORD_STORE_BACKEND!r}")

    if missing:
        raise ConfigurationError(
            f"Missing {RECORD_STORE_BACKEND} record store config: {', '.join(missing)}"
        )


def record_store_tables() -> tuple[str, str]:
    """(bookings table, disabled-dates table) for the selected backend"""
    if RECORD_STORE_BACKEND == "baserow":
        return BASEROW_BOOKINGS_TABLE_ID or "", BASEROW_DISABLED_DATES_TABLE_ID or ""
    return AIRTABLE_BOOKINGS_TABLE, AIRTABLE_DISABLED_DATES_TABLE
