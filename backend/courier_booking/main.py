import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courier_booking import __version__
from courier_booking.api.router import api_router
from courier_booking.config import settings
from courier_booking.database import create_engine, init_models
from courier_booking.error_handlers import register_exception_handlers
from courier_booking.middleware.logging import RequestLoggingMiddleware
from courier_booking.services.id_extraction_service import IdExtractionService
from courier_booking.services.sms_gateway import SmsGateway
from courier_booking.store.document_store import DocumentStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize Sentry if DSN is configured
    if settings.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=0.1,
                environment=settings.environment,
            )
            logger.info("Sentry initialized (env=%s)", settings.environment)
        except Exception as e:
            logger.warning("Failed to initialize Sentry: %s", e)

    engine = create_engine(settings)
    if settings.create_tables_on_startup:
        await init_models(engine)

    app.state.store = DocumentStore.from_engine(engine)
    app.state.sms_gateway = SmsGateway(settings)
    app.state.extractor = IdExtractionService(settings)

    logger.info("Starting courier booking API (env=%s)", settings.environment)
    yield
    logger.info("Shutting down courier booking API")

    await app.state.sms_gateway.aclose()
    await engine.dispose()


app = FastAPI(
    title="KN Express Booking API",
    description="Shipment booking intake with OTP phone verification and Emirates ID name checks",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api")


@app.get("/api", include_in_schema=False)
async def api_info() -> dict:
    return {
        "message": "KN Express Booking API",
        "version": __version__,
        "endpoints": {
            "health": "GET /api/health",
            "otpGenerate": "POST /api/otp/generate",
            "otpVerify": "POST /api/otp/verify",
            "bookings": "POST /api/bookings",
        },
    }
