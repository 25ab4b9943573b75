"""
FastAPI application setup for the opsboard dashboard.

``create_app`` builds the app around explicitly constructed collaborators
(GitHub service, local store, webhook event buffer) held on ``app.state``,
and registers routes and error handlers. Nothing is built at import time;
uvicorn can call the factory directly:

    uvicorn opsboard.core.dashboard.api.app:create_app --factory
"""

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from opsboard import __version__
from opsboard.core.config import OpsboardConfig, load_config
from opsboard.core.dashboard.api.routes import (
    blog,
    github,
    pipeline,
    reports,
    revenue,
    team,
    webhooks,
)
from opsboard.core.events import EventBuffer
from opsboard.core.github.errors import ErrorKind, GitHubError
from opsboard.core.github.service import GitHubDashboardService
from opsboard.core.store import Store, StoreError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"

    # GitHub failures, one per error kind
    GITHUB_NOT_CONFIGURED = "GITHUB_NOT_CONFIGURED"
    GITHUB_AUTH_ERROR = "GITHUB_AUTH_ERROR"
    GITHUB_RATE_LIMITED = "GITHUB_RATE_LIMITED"
    GITHUB_UPSTREAM_ERROR = "GITHUB_UPSTREAM_ERROR"

    # Server errors (5xx)
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error_code: ErrorCode
    message: str
    detail: str | None = None
    request_id: str | None = None


# GitHub error kind -> (HTTP status, error code, user-facing message)
GITHUB_ERROR_MAP: dict[ErrorKind, tuple[int, ErrorCode, str]] = {
    ErrorKind.CONFIGURATION: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        ErrorCode.GITHUB_NOT_CONFIGURED,
        "GitHub integration is not configured",
    ),
    ErrorKind.AUTHENTICATION: (
        status.HTTP_401_UNAUTHORIZED,
        ErrorCode.GITHUB_AUTH_ERROR,
        "GitHub token expired or invalid",
    ),
    ErrorKind.RATE_LIMITED: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        ErrorCode.GITHUB_RATE_LIMITED,
        "GitHub rate limit reached, try again later",
    ),
    ErrorKind.UPSTREAM: (
        status.HTTP_502_BAD_GATEWAY,
        ErrorCode.GITHUB_UPSTREAM_ERROR,
        "GitHub request failed",
    ),
}


def _error_body(
    request: Request, error_code: ErrorCode, message: str, detail: str | None
) -> dict[str, str | None]:
    return ErrorResponse(
        error_code=error_code,
        message=message,
        detail=detail,
        request_id=str(id(request)),
    ).model_dump(mode="json")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle FastAPI HTTPException with consistent error response format.

    Logs errors for debugging without exposing stack traces to clients.
    """
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = ErrorCode.NOT_FOUND
    elif exc.status_code == status.HTTP_401_UNAUTHORIZED:
        error_code = ErrorCode.INVALID_SIGNATURE
    elif exc.status_code < 500:
        error_code = ErrorCode.INVALID_REQUEST
    elif "database" in str(exc.detail).lower():
        error_code = ErrorCode.DATABASE_ERROR
    else:
        error_code = ErrorCode.INTERNAL_ERROR

    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "HTTP %d on %s %s: %s",
        exc.status_code,
        request.method,
        request.url.path,
        exc.detail,
        extra={"request_id": id(request)},
    )

    detail_msg = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, error_code, detail_msg, detail_msg),
    )


async def github_exception_handler(request: Request, exc: GitHubError) -> JSONResponse:
    """
    Turn a GitHub failure into a degraded response for that data source only.

    Reached only when the cache had nothing to fall back to.
    """
    http_status, error_code, message = GITHUB_ERROR_MAP[exc.kind]

    if exc.kind is ErrorKind.AUTHENTICATION:
        logger.error("GitHub rejected the token on %s: %s", request.url.path, exc)
    else:
        logger.warning(
            "GitHub %s on %s %s: %s",
            exc.kind.value,
            request.method,
            request.url.path,
            exc,
            extra={"request_id": id(request)},
        )

    return JSONResponse(
        status_code=http_status,
        content=_error_body(request, error_code, message, str(exc)),
    )


async def store_exception_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Handle local store failures."""
    logger.error(
        "Store error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        extra={"request_id": id(request)},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request, ErrorCode.DATABASE_ERROR, "Database operation failed", str(exc)
        ),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle validation errors from Pydantic models and query parameters.
    """
    logger.warning(
        "Validation error on %s %s: %s",
        request.method,
        request.url.path,
        exc.errors(),
        extra={"request_id": id(request)},
    )

    first_error = exc.errors()[0] if exc.errors() else {}
    field = " -> ".join(str(loc) for loc in first_error.get("loc", []))
    error_msg = first_error.get("msg", "Invalid input")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(
            request,
            ErrorCode.VALIDATION_ERROR,
            "Request validation failed",
            f"{field}: {error_msg}" if field else error_msg,
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all uncaught exceptions.

    Logs the full traceback but returns a clean error response.
    """
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url.path,
        str(exc),
        traceback.format_exc(),
        extra={"request_id": id(request)},
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request,
            ErrorCode.INTERNAL_ERROR,
            "An internal server error occurred",
            str(exc),
        ),
    )


def create_app(
    config: OpsboardConfig | None = None,
    *,
    service: GitHubDashboardService | None = None,
    store: Store | None = None,
    events: EventBuffer | None = None,
) -> FastAPI:
    """
    Create the dashboard API.

    Args:
        config: Configuration (loaded from files and env if None)
        service: GitHub service (built from config if None)
        store: Local store (opened at ``config.dashboard.db_path`` if None)
        events: Webhook event buffer (a new one if None)

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = load_config()

    github_service = service or GitHubDashboardService.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.github.aclose()

    app = FastAPI(
        title="Opsboard API",
        description="Operations dashboard API: GitHub activity and local task state",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.github = github_service
    app.state.store = store or Store(config.dashboard.db_path)
    app.state.events = events or EventBuffer()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.dashboard.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(github.router, prefix="/api", tags=["github"])
    app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])
    app.include_router(revenue.router, prefix="/api", tags=["revenue"])
    app.include_router(reports.router, prefix="/api", tags=["reports"])
    app.include_router(pipeline.router, prefix="/api", tags=["pipeline"])
    app.include_router(team.router, prefix="/api", tags=["team"])
    app.include_router(blog.router, prefix="/api", tags=["blog"])

    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(GitHubError, github_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StoreError, store_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint - API health check."""
        return {"status": "ok", "message": "Opsboard API"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app
