import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .background import BackgroundSpawner
from .domain.contact.router import router as contact_router
from .domain.scheduling.availability_service import AvailabilityService
from .domain.scheduling.booking_service import BookingService
from .domain.scheduling.disabled_dates import Clock, DisabledDatesCache, utc_now
from .domain.scheduling.repository import BookingRepository
from .domain.scheduling.router import router as scheduling_router
from .domain.scheduling.schemas import BusinessHoursTable, SlotConfig
from .email_service import create_email_service
from .errors import BookingError, RateLimitExceeded
from .rate_limiter import create_rate_limiter
from .services.airtable_service import AirtableService
from .services.baserow_service import BaserowService
from .services.notification_service import NotificationService
from .services.record_store import RecordStore
from .turnstile import TurnstileVerifier

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_record_store() -> RecordStore:
    """
    Record store for RECORD_STORE_BACKEND.

    Raises:
        ConfigurationError: If the backend is unknown or lacks credentials
    """
    config.require_record_store_config()
    if config.RECORD_STORE_BACKEND == "baserow":
        logger.info(f"📦 Using Baserow record store at {config.BASEROW_API_URL}")
        return BaserowService(
            token=config.BASEROW_TOKEN,
            api_url=config.BASEROW_API_URL,
            timeout_seconds=config.RECORD_STORE_TIMEOUT_SECONDS,
        )
    logger.info(f"📦 Using Airtable record store (base {config.AIRTABLE_BASE_ID})")
    return AirtableService(
        api_key=config.AIRTABLE_API_KEY,
        base_id=config.AIRTABLE_BASE_ID,
        timeout_seconds=config.RECORD_STORE_TIMEOUT_SECONDS,
    )


def create_app(
    record_store: Optional[RecordStore] = None,
    notifier=None,
    business_hours: Optional[BusinessHoursTable] = None,
    slot_config: Optional[SlotConfig] = None,
    business_tz: str = config.BUSINESS_TZ,
    clock: Clock = utc_now,
    rate_limiter=None,
    captcha_verifier=None,
    failure_mode: str = config.AVAILABILITY_FAILURE_MODE,
    admin_token: Optional[str] = config.ADMIN_TOKEN,
    spawner: Optional[BackgroundSpawner] = None,
) -> FastAPI:
    """
    Build the API.

    Every collaborator can be injected; anything left out is built from
    configuration when the application starts.
    """
    spawner = spawner or BackgroundSpawner()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")

        store = record_store or build_record_store()
        bookings_table, disabled_dates_table = config.record_store_tables()
        repository = BookingRepository(store, bookings_table, disabled_dates_table)

        hours = business_hours or config.load_business_hours()
        slots = slot_config or config.load_slot_config()
        notification_service = notifier or NotificationService(create_email_service())

        disabled_dates = DisabledDatesCache(repository, clock=clock)
        try:
            await disabled_dates.refresh()
        except BookingError as e:
            # Retried by the first availability request
            logger.warning(f"⚠️ Could not load disabled dates at startup: {e.message}")

        app.state.disabled_dates = disabled_dates
        app.state.notifier = notification_service
        app.state.availability_service = AvailabilityService(
            repository, disabled_dates, hours, slots, business_tz, failure_mode=failure_mode
        )
        app.state.booking_service = BookingService(
            repository, slots, business_tz, notifier=notification_service, spawner=spawner
        )
        app.state.contact_rate_limiter = rate_limiter or create_rate_limiter()
        app.state.captcha_verifier = captcha_verifier or TurnstileVerifier()
        app.state.admin_token = admin_token

        yield

        logger.info("Application shutting down...")
        await spawner.drain()

    app = FastAPI(title="Booking API", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        content = {"message": exc.message}
        if exc.errors:
            content["errors"] = exc.errors
        headers = None
        if isinstance(exc, RateLimitExceeded):
            headers = {"Retry-After": str(exc.retry_after)}
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} - {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies and query parameters are 400 with field-level messages"""
        errors = {}
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
            errors[".".join(loc) or "body"] = error.get("msg", "Invalid value")
        logger.warning(f"Validation error for {request.url.path}: {errors}")
        return JSONResponse(
            status_code=400, content={"message": "Missing or invalid fields", "errors": errors}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    # CORS Configuration
    logger.info(f"CORS allowed origins: {config.ALLOWED_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(scheduling_router)
    app.include_router(contact_router)

    @app.get("/")
    def root():
        return {"message": "Booking API is running"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
