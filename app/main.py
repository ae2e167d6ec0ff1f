import logging
from contextlib import asynccontextmanager
from typing import Callable

import sentry_sdk
import structlog
from app.core.logging_config import configure_logging

# Initialize production logging configuration
configure_logging()

_startup_logger = logging.getLogger(__name__)

# Initialize Sentry (no-op if SENTRY_DSN is empty)
from app.core.config import settings as _early_settings
if _early_settings.sentry_dsn:
    sentry_sdk.init(
        dsn=_early_settings.sentry_dsn,
        environment=_early_settings.environment,
        traces_sample_rate=0.1,
    )

from app.api.v1 import contact
from app.core.config import settings
from app.core.exceptions import ConfigurationError, ValidationError
from app.domain.schemas import format_validation_errors
from app.middleware.trace_middleware import TraceMiddleware
from app.services.submission import build_orchestrator
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()

RATE_LIMIT_MESSAGE = "Too many contact form submissions, please try again later."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    # Startup
    _startup_logger.info("starting_application version=%s", settings.api_version)

    missing = settings.missing_email_settings
    if missing:
        logger.error("email_configuration_incomplete", missing=missing)
    else:
        logger.info("email_configuration_loaded", host=settings.email_host, port=settings.email_port)

    if settings.google_sheets_url:
        logger.info(
            "sheets_configuration_loaded",
            service_account=settings.service_account_configured,
            webhook=bool(settings.google_sheets_webhook_url),
        )

    yield

    # Shutdown
    _startup_logger.info("shutting_down_application")


_is_production = settings.environment == "production"

# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url=None if _is_production else f"{settings.api_prefix}/docs",
    redoc_url=None if _is_production else f"{settings.api_prefix}/redoc",
    openapi_url=None if _is_production else f"{settings.api_prefix}/openapi.json",
)

# One orchestrator per process; it owns the SMTP transport and Sheets client
app.state.orchestrator = build_orchestrator(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Trace-Id"],
    expose_headers=["Content-Type", "X-Trace-Id"],
    max_age=600,  # Cache preflight for 10 minutes
)

# Add security headers middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: StarletteRequest, call_next: Callable) -> StarletteResponse:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-DNS-Prefetch-Control"] = "off"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if _is_production:
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains; preload"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# Add trace ID middleware for request tracking
app.add_middleware(TraceMiddleware)

# Add rate limiting middleware
app.state.limiter = contact.limiter
app.add_middleware(SlowAPIMiddleware)

# Include routers
app.include_router(contact.router, prefix=settings.api_prefix)


# Exception handlers
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit violations"""
    logger.warning("rate_limit_exceeded", path=request.url.path, limit=str(exc.detail))
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"success": False, "message": RATE_LIMIT_MESSAGE},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    errors = format_validation_errors(exc.errors())

    logger.warning("validation_error", errors=errors, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Validation failed",
            "errors": errors,
        },
    )


@app.exception_handler(ValidationError)
async def domain_validation_handler(request: Request, exc: ValidationError):
    """Handle validation errors raised outside request parsing"""
    logger.warning("validation_error", errors=exc.errors, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": exc.message,
            "errors": exc.errors,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    gate = getattr(request.state, "response_gate", None)
    if gate is not None and gate.is_sent:
        logger.warning(
            "unhandled_exception_after_response",
            error=str(exc),
            path=request.url.path,
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=gate.payload)

    logger.error(
        "unhandled_exception", error=str(exc), path=request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Failed to send message. Please try again later.",
        },
    )


# Health check endpoints
@app.get("/health")
async def health() -> JSONResponse:
    """Health check endpoint"""
    body = contact.build_health_response(settings, "Server is running")
    logger.info("healthcheck", status="ok")
    return JSONResponse(body.model_dump(by_alias=True))


@app.get("/health/email")
async def health_email(request: Request) -> JSONResponse:
    """Connect and authenticate against the SMTP server"""
    provider = request.app.state.orchestrator.dispatcher.transport_provider
    try:
        await provider.get().verify()
    except ConfigurationError as e:
        logger.error("smtp_health_check_failed", error_kind=e.error_kind, missing=e.missing)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"success": False, "message": e.message, "missing": e.missing},
        )
    except Exception as e:
        logger.error("smtp_health_check_failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"success": False, "message": f"SMTP connection failed: {e}"},
        )

    return JSONResponse({"success": True, "message": "SMTP connection verified"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
