"""DigiKite API - Main FastAPI Application."""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from adapters.guild import GuildError
from adapters.identity import GoogleAuthError
from adapters.payments import RazorpayError
from api.middleware.rate_limit import limiter
from api.routes import api_router
from core.exceptions import DigiKiteError
from infrastructure.config import get_settings
from infrastructure.database import close_db, get_db_context, init_db
from infrastructure.logging_config import setup_logging
from services.lifecycle import run_lifecycle
from services.reminders import run_all_reminders
from services.seed import seed_default_plans

settings = get_settings()
logger = logging.getLogger(__name__)

# Sentry error tracking, initialised at module level so startup errors are captured too
if settings.sentry_dsn:
    _dsn = settings.sentry_dsn
    if not _dsn.startswith("https://"):
        logger.warning("SENTRY_DSN appears malformed: %s. Sentry will not be initialized.", _dsn[:30])
    else:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.logging import LoggingIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=_dsn,
            environment=settings.environment,
            integrations=[
                FastApiIntegration(transaction_style="url"),
                SqlalchemyIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            traces_sample_rate=0.1 if settings.is_production else 1.0,
            send_default_pii=False,
        )
        logger.info("Sentry error tracking initialised (env=%s)", settings.environment)


async def _run_scheduled_jobs() -> None:
    """One pass of the reminder emails and the subscription lifecycle sweep."""
    try:
        async with get_db_context() as db:
            reminders = await run_all_reminders(db)
        async with get_db_context() as db:
            lifecycle = await run_lifecycle(db)
        logger.info("Scheduled jobs finished: reminders=%s lifecycle=%s", reminders, lifecycle)
    except Exception as e:
        logger.error("Scheduled jobs failed: %s", e, exc_info=True)


async def _scheduled_jobs_loop() -> None:
    while True:
        await asyncio.sleep(settings.lifecycle_interval_seconds)
        await _run_scheduled_jobs()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # JSON logs in production, human-readable in development
    setup_logging(
        json_output=not settings.debug and settings.is_production,
        level="DEBUG" if settings.debug else "INFO",
    )

    # Startup
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.environment)

    settings.validate_production_secrets()

    if settings.is_development:
        logger.info("Development mode - initializing database...")
        await init_db()
        async with get_db_context() as db:
            created = await seed_default_plans(db)
        if created:
            logger.info("Seeded %d default subscription plans", created)

    if settings.environment == "production":
        try:
            import redis.asyncio as aioredis

            _redis_check = aioredis.from_url(settings.redis_url, max_connections=20)
            await _redis_check.ping()
            await _redis_check.aclose()
            logger.info("Redis connectivity confirmed for rate limiter")
        except Exception as _redis_err:
            # Startup continues; rate limits fall back to per-process counters
            logger.critical(
                "Redis is unreachable in production (%s). "
                "Rate limiting will use per-process in-memory storage.",
                _redis_err,
            )

    jobs_task = asyncio.create_task(_scheduled_jobs_loop(), name="scheduled-jobs")

    logger.info("Application started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down...")

    jobs_task.cancel()
    try:
        await jobs_task
    except asyncio.CancelledError:
        pass

    await close_db()
    logger.info("Application stopped.")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Provisioning and billing back office for the Guild alumni platform",
    version=settings.app_version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# slowapi: app.state.limiter backs the @limiter.limit decorators, the
# middleware applies the global default limit and the handler returns 429
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


_MAX_BODY_SIZE = 5 * 1024 * 1024  # 5MB


@app.middleware("http")
async def limit_request_body_size(request: Request, call_next):
    if request.method in ("POST", "PUT", "PATCH"):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > _MAX_BODY_SIZE:
            return JSONResponse(
                status_code=413,
                content={"detail": "Request body too large (max 5MB)"},
            )
    return await call_next(request)


@app.exception_handler(DigiKiteError)
async def domain_exception_handler(request: Request, exc: DigiKiteError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RazorpayError)
async def razorpay_exception_handler(request: Request, exc: RazorpayError):
    logger.error("Razorpay error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": f"Payment provider error: {exc}"})


@app.exception_handler(GuildError)
async def guild_exception_handler(request: Request, exc: GuildError):
    logger.error("Guild error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": f"Guild platform error: {exc}"})


@app.exception_handler(GoogleAuthError)
async def google_auth_exception_handler(request: Request, exc: GoogleAuthError):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    # Production logs carry only the type and a truncated message
    if settings.environment == "production":
        logger.error("Unhandled exception: %s: %s", type(exc).__name__, str(exc)[:200])
    else:
        logger.error("Unhandled exception: %s", str(exc), exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Response-Time"] = f"{duration_ms:.1f}ms"

    # Health checks are polled constantly
    path = request.url.path
    if not path.startswith("/api/v1/health"):
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            path,
            response.status_code,
            round(duration_ms, 1),
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 1),
            },
        )
    return response


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    incoming = request.headers.get("X-Request-ID")
    # Only a valid UUID from the caller is reused
    if incoming:
        try:
            uuid.UUID(incoming)
            request_id = incoming
        except ValueError:
            request_id = str(uuid.uuid4())
    else:
        request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.environment == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Razorpay-Signature"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs" if settings.is_development else "disabled",
        "health": "/api/v1/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        workers=settings.workers if not settings.is_development else 1,
    )
