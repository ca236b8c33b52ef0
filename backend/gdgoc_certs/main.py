from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from slowapi.errors import RateLimitExceeded

from gdgoc_certs import __version__
from gdgoc_certs.core.config import Settings, settings as default_settings
from gdgoc_certs.core.database import Database
from gdgoc_certs.core.exceptions import CertsError, error_response
from gdgoc_certs.core.logging_config import logger
from gdgoc_certs.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from gdgoc_certs.core.rate_limiter import limiter, rate_limit_exceeded_handler
from gdgoc_certs.api.router import api_router
from gdgoc_certs.services.email_service import EmailService

SERVICE_NAME = "gdgoc-cert-api"


def validate_critical_config(settings: Settings) -> None:
    """Fail fast on configuration that would break every request"""
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")
    if settings.is_production and not settings.CORS_ORIGINS:
        logger.warning("[Startup] No CORS origins configured for production")


async def ensure_database_ready(database: Database) -> bool:
    """Create missing tables; a failure is logged and the app still starts"""
    try:
        await database.create_tables()
        logger.info("[Startup] Database tables ready")
        return True
    except Exception as e:
        logger.error(f"[Startup] Failed to ensure database ready: {e}")
        return False


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database and mailer for the life of the process"""
        logger.info("=" * 60)
        logger.info(f"Starting {settings.APP_NAME}...")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info("=" * 60)

        validate_critical_config(settings)

        database = Database(settings)
        app.state.database = database
        if settings.DB_CREATE_TABLES:
            await ensure_database_ready(database)

        email_service = EmailService(settings)
        app.state.email_service = email_service
        if email_service.is_configured:
            await email_service.verify_connection()
        else:
            logger.warning("[Startup] SMTP credentials missing - certificate emails will not be sent")

        yield

        logger.info(f"Shutting down {settings.APP_NAME}...")
        await database.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Certificate issuance and validation for GDG on Campus chapters",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        redirect_slashes=False
    )

    # Add rate limiter state and exception handler
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Add middleware (order matters - last added runs first)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_BODY_BYTES)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            settings.AUTH_HEADER_UID,
            settings.AUTH_HEADER_NAME,
            settings.AUTH_HEADER_EMAIL,
        ],
        expose_headers=["X-Request-ID", "X-Response-Time", "Retry-After"],
    )

    # Exception handlers
    @app.exception_handler(CertsError)
    async def certs_error_handler(request: Request, exc: CertsError):
        if exc.status_code >= 500:
            logger.error(f"[{exc.code}] {exc.message}", extra={"error_details": exc.details})
        return JSONResponse(status_code=exc.status_code, content=error_response(exc))

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": {"code": "NOT_FOUND", "message": "Route not found", "details": {}},
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if settings.DEBUG else "Internal server error",
                    "details": {},
                },
            },
        )

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness for the load balancer"""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
        }

    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


app = create_app()


def run() -> None:
    """Entry point for `gdgoc-certs-api`"""
    import uvicorn

    uvicorn.run(
        "gdgoc_certs.main:app",
        host=default_settings.SERVER_HOST,
        port=default_settings.SERVER_PORT,
        reload=default_settings.DEBUG,
    )
