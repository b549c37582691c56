"""FastAPI application factory."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from peanutlink import __version__
from peanutlink.api.ratelimit import FixedWindowRateLimiter, RateLimitMiddleware
from peanutlink.config import Settings, get_settings
from peanutlink.errors import ConfigurationError
from peanutlink.issuance.workflow import LinkIssuanceWorkflow
from peanutlink.ledger.database import Database
from peanutlink.services import start_services

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("peanutlink.access")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the wallet, issuer and journal unless they were injected."""
    services = None
    if app.state.workflow is None:
        try:
            services = await start_services(app.state.settings)
        except ConfigurationError as e:
            logger.critical(f"Failed to initialize services: {e}")
            raise
        app.state.workflow = services.workflow
        app.state.database = services.database

    yield

    if services is not None:
        await services.close()
        app.state.workflow = None
        app.state.database = None


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Shape every HTTP error as {"error": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request parameters."})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled Error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


async def access_log_middleware(request: Request, call_next):
    """Log each request in Apache combined format."""
    started = time.perf_counter()
    status_code = 500
    size = "-"
    try:
        response = await call_next(request)
        status_code = response.status_code
        size = response.headers.get("content-length", "-")
        return response
    finally:
        client = request.client.host if request.client else "-"
        stamp = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z")
        target = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        access_logger.info(
            f'{client} - - [{stamp}] "{request.method} {target} '
            f'HTTP/{request.scope.get("http_version", "1.1")}" {status_code} {size} '
            f'"{request.headers.get("referer", "-")}" "{request.headers.get("user-agent", "-")}" '
            f"{(time.perf_counter() - started) * 1000:.1f}ms"
        )


def create_app(
    settings: Optional[Settings] = None,
    workflow: Optional[LinkIssuanceWorkflow] = None,
    database: Optional[Database] = None,
    limiter: Optional[FixedWindowRateLimiter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to environment settings)
        workflow: Pre-built workflow; when given, startup creates nothing
        database: Journal database for the admin listing
        limiter: Rate limiter (defaults to the configured fixed window)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Peanut Link API",
        description="Issues claimable payment links funded by a custody wallet",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.workflow = workflow
    app.state.database = database
    app.state.limiter = limiter or FixedWindowRateLimiter(
        limit=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Last added runs first: access log wraps the rate limiter
    app.add_middleware(RateLimitMiddleware, limiter=app.state.limiter)
    app.middleware("http")(access_log_middleware)

    # Register routes
    from peanutlink.api.routes import admin, health, links

    app.include_router(health.router, tags=["Health"])
    app.include_router(links.router, tags=["Links"])
    app.include_router(admin.router)

    return app
