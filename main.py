"""
KittyCare API - cat care recommendations, chat and subscription billing
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from auth import AuthenticationError, auth_router
from config.settings import PROVIDER_PAYPAL, PROVIDER_STRIPE, settings, IS_PRODUCTION
from database import build_engine, build_sessionmaker, init_db
from routers.cats_router import cats_router
from routers.chat_router import chat_router
from routers.openai_router import openai_router
from routers.payments_router import payments_router
from routers.subscriptions_router import subscriptions_router
from services.analytics_service import AnalyticsService, build_http_client as build_klaviyo_client
from services.email_service import EmailService
from services.notifications import NotificationOutbox
from services.providers.paypal_provider import PayPalProvider, build_http_client as build_paypal_client
from services.providers.stripe_provider import StripeProvider
from services.recommendation_service import RecommendationService
from utils.cache import RedisCache
from utils.responses import errors_response, format_validation_errors, message_response

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# Keys the app can start without, but with reduced functionality
OPTIONAL_KEYS = {
    "JWT_SECRET_KEY": settings.jwt_secret_key,
    "STRIPE_SECRET_KEY": settings.stripe_secret_key,
    "STRIPE_WEBHOOK_SECRET": settings.stripe_webhook_secret,
    "PAYPAL_CLIENT_ID": settings.paypal_client_id,
    "SENDGRID_API_KEY": settings.sendgrid_api_key,
    "KLAVIYO_API_KEY": settings.klaviyo_api_key,
    "OPENAI_API_KEY": settings.openai_api_key,
}


def check_env_keys():
    """Warn about missing environment variables (non-fatal)"""
    missing = [key for key, value in OPTIONAL_KEYS.items() if not value]
    if missing:
        logger.warning(f"Startup check: Missing environment variables: {', '.join(missing)}")
    else:
        logger.info("Startup check: All environment variables are set")


async def open_resources(app: FastAPI):
    """Build every external client once and hang it on app.state."""
    app.state.engine = build_engine()
    app.state.sessionmaker = build_sessionmaker(app.state.engine)
    await init_db(app.state.engine)
    logger.info("Database initialized successfully")

    app.state.providers = {
        PROVIDER_STRIPE: StripeProvider.from_api_key(settings.stripe_secret_key),
        PROVIDER_PAYPAL: PayPalProvider(
            build_paypal_client(settings.paypal_client_id, settings.paypal_secret_key, settings.paypal_base_url),
            settings.paypal_brand_name,
        ),
    }
    app.state.cache = RedisCache.from_url(settings.redis_url)
    app.state.email_service = EmailService.from_settings(settings)
    app.state.analytics_service = AnalyticsService(
        build_klaviyo_client(settings.klaviyo_api_key, settings.klaviyo_revision)
    )
    app.state.recommendation_service = RecommendationService.from_settings(settings)
    app.state.outbox = NotificationOutbox()


async def close_resources(app: FastAPI):
    # Drain notifications first; they use the HTTP clients closed below
    await app.state.outbox.aclose()
    for provider in app.state.providers.values():
        await provider.aclose()
    await app.state.analytics_service.aclose()
    await app.state.recommendation_service.aclose()
    await app.state.cache.aclose()
    await app.state.engine.dispose()
    logger.info("Resources closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_env_keys()
    await open_resources(app)
    try:
        yield
    finally:
        await close_resources(app)


app = FastAPI(title="KittyCare API", lifespan=lifespan)


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error"}
            )


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: CSP, HSTS, X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # JSON API only; nothing should be rendered or framed
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # HTTPS is only guaranteed in production
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response


app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = format_validation_errors(exc.errors())
    logger.info(f"Validation failed for {request.method} {request.url.path}: {errors}")
    return errors_response(errors, 400)


@app.exception_handler(AuthenticationError)
async def authentication_exception_handler(request: Request, exc: AuthenticationError):
    return message_response(exc.message, 401)


@app.get("/health")
async def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(subscriptions_router)
app.include_router(payments_router)
app.include_router(cats_router)
app.include_router(openai_router)
app.include_router(chat_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
