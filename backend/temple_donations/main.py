"""
Temple Donations — FastAPI Application Entry Point

Builds the application: settings, database client, payment services,
middleware and routers. The database client is opened at startup and
closed at shutdown.
"""
import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from temple_donations.config import Settings, get_settings, validate_payment_config
from temple_donations.database import Database
from temple_donations.logging_config import configure_logging
from temple_donations.routes import payment_router, admin_router
from temple_donations.schemas.schemas import HealthResponse
from temple_donations.services.donation_service import DonationService
from temple_donations.services.notification_service import NotificationService
from temple_donations.services.payu_client import PayUClient
from temple_donations.services.receipt_service import ReceiptService
from temple_donations.services.upi_service import UpiService
from temple_donations.utils.rate_limiter import rate_limit

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    notifier: Optional[NotificationService] = None,
    payu_client: Optional[PayUClient] = None,
) -> FastAPI:
    """Application factory. Collaborators may be injected for tests."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "Donation payment API for the temple website. "
            "Covers PayU request signing and callback verification, "
            "UPI intents and QR codes, and donor WhatsApp notifications."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ─── Collaborators ───────────────────────────────────────────────
    database = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)
    notifier = notifier or NotificationService(settings)
    payu_client = payu_client or PayUClient(
        settings.PAYU_MERCHANT_KEY,
        settings.merchant_salt,
        settings.PAYU_VERIFY_URL,
        timeout=settings.PAYU_TIMEOUT_SECONDS,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.donation_service = DonationService(settings, notifier)
    app.state.upi_service = UpiService(settings.UPI_MERCHANT_ID, settings.UPI_MERCHANT_NAME, payu_client)
    app.state.receipt_service = ReceiptService(settings)
    app.state.initiate_limiter = rate_limit(
        requests=settings.INITIATE_RATE_LIMIT, window=settings.INITIATE_RATE_WINDOW_SECONDS,
    )
    app.state.boot_time = time.time()

    # ─── Startup / Shutdown ──────────────────────────────────────────

    @app.on_event("startup")
    def on_startup():
        """Create tables and log boot info."""
        database.init()

        is_valid, errors = validate_payment_config(settings)
        for error in errors:
            logger.warning("Configuration: %s", error)

        logger.info(
            "\n%s\n  %s v%s\n  TIME: %s\n  PAYU MODE: %s (%s)\n  WHATSAPP: %s\n  DEBUG: %s\n%s",
            "=" * 60,
            settings.APP_NAME,
            settings.APP_VERSION,
            datetime.now().isoformat(),
            settings.PAYU_MODE,
            "[OK] Configured" if is_valid else "[!] Incomplete",
            "[OK] Enabled" if notifier.configured else "[!] Disabled",
            settings.DEBUG,
            "=" * 60,
        )

    @app.on_event("shutdown")
    def on_shutdown():
        database.close()

    # ─── Middleware ──────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every API request with timing."""
        start = time.time()
        response = await call_next(request)
        duration = round((time.time() - start) * 1000, 1)

        if request.url.path.startswith("/api"):
            logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration)

        return response

    # ─── API Routers ─────────────────────────────────────────────────
    app.include_router(payment_router)
    app.include_router(admin_router)

    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    def health():
        """Health check including dependency statuses."""
        db_ok = database.ping()
        return HealthResponse(
            status="healthy" if db_ok else "degraded",
            database="connected" if db_ok else "disconnected",
            payments_configured=bool(settings.PAYU_MERCHANT_KEY and settings.merchant_salt),
            whatsapp_configured=notifier.configured,
            uptime_seconds=round(time.time() - app.state.boot_time, 1),
            version=settings.APP_VERSION,
        )

    return app


app = create_app()
