"""FastAPI application entry point."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from realty_crm import __version__
from realty_crm.api import alerts, analytics, automation, crm, health, mail, oauth
from realty_crm.api.rate_limits import limiter
from realty_crm.config import get_settings, require_valid_settings
from realty_crm.core.exceptions import CRMError
from realty_crm.core.logging_setup import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from realty_crm.db import close_db, init_db


log = get_logger(__name__)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please try again later.",
            "detail": str(exc.detail),
        },
    )


def crm_exception_handler(request: Request, exc: CRMError) -> JSONResponse:
    """Map domain errors to their status code and ``to_dict()`` body."""
    level = log.error if exc.status_code >= 500 else log.warning
    level(
        "Request failed",
        error_code=exc.error_code,
        error=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with structured response.

    Provides consistent error format across all HTTP errors.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": _status_code_to_error_type(exc.status_code),
            "message": str(exc.detail),
            "status_code": exc.status_code,
        },
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed field information."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({
            "field": field or "request",
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": errors,
        },
    )


def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Logs the error and returns a generic 500 response without exposing
    internal details in production.
    """
    log.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    detail = str(exc) if get_settings().debug else "An internal error occurred"
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": detail,
        },
    )


def _status_code_to_error_type(status_code: int) -> str:
    """Map HTTP status codes to error type strings."""
    error_types = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        422: "validation_error",
        429: "rate_limit_exceeded",
        500: "internal_error",
        502: "bad_gateway",
        503: "service_unavailable",
    }
    return error_types.get(status_code, "error")


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Tag every log entry of a request with its id, method and path."""
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    clear_request_context()
    bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-ID"] = request_id
    return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    setup_logging(level=settings.log_level, json_output=settings.log_json)

    log.info(
        "Starting Realty CRM",
        version=__version__,
        environment=settings.environment,
    )

    # Raises on missing production secrets
    require_valid_settings()

    log.info("Initializing database")
    await init_db()
    log.info("Database initialized successfully")

    yield

    log.info("Shutting down Realty CRM")
    await close_db()
    log.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Realty CRM",
        description="Real-estate CRM backend: records, automation rules, analytics and mail",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Rate limiting
    app.state.limiter = limiter

    # Exception handlers (order matters - most specific first)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(CRMError, crm_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.middleware("http")(request_context_middleware)

    # Cannot use wildcard origins with credentials, so in debug mode
    # the local frontend origins are listed explicitly
    cors_origins = list(settings.cors_origins) or (
        [
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ]
        if settings.debug
        else []
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(automation.router, prefix="/api/v1", tags=["Automation"])
    app.include_router(alerts.router, prefix="/api/v1", tags=["Deadline Alerts"])
    app.include_router(analytics.router, prefix="/api/v1", tags=["Analytics"])
    app.include_router(crm.router, prefix="/api/v1", tags=["CRM"])
    app.include_router(mail.router, prefix="/api/v1", tags=["Mail"])
    app.include_router(oauth.router, prefix="/api/v1", tags=["OAuth"])

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "realty_crm.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
