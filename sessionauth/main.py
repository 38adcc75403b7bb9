"""
FastAPI application assembly for sessionauth.

Run with ``python -m sessionauth`` or
``uvicorn sessionauth.main:create_app --factory``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url

from sessionauth import __version__
from sessionauth.config import Settings, load_settings
from sessionauth.db.connection import Database
from sessionauth.errors import AppError, PersistenceError

# Import routers
from sessionauth.routers import auth, health, pages

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    settings: Settings = app.state.settings
    database: Database = app.state.database

    logger.info("sessionauth starting up")
    logger.info(
        "  DATABASE_URL     = %s",
        make_url(settings.DATABASE_URL).render_as_string(hide_password=True),
    )
    logger.info("  SESSION_MAX_AGE  = %d days", settings.SESSION_MAX_AGE_DAYS)
    logger.info("  ALLOWED_ORIGINS  = %s", settings.ALLOWED_ORIGINS)

    if settings.DB_CREATE_TABLES:
        database.create_all()

    yield  # Application is running

    logger.info("sessionauth shutting down")
    database.dispose()


# ── Exception handlers ───────────────────────────────────────────────────────

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        logger.error(
            "Persistence failure on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
    else:
        logger.info(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"message": "Invalid request body"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build and return the FastAPI application.

    Raises ``ConfigurationError`` when required settings are missing, so a
    misconfigured process never starts serving.
    """
    settings = settings or load_settings()
    database = database or Database(settings.DATABASE_URL)

    app = FastAPI(
        title="sessionauth",
        description="Username/password registration with signed-cookie sessions",
        version=__version__,
        lifespan=lifespan,
    )

    # Process-scoped handles; the engine itself is created on first use.
    app.state.settings = settings
    app.state.database = database

    # ---- CORS ----
    explicit_origins = [o for o in settings.ALLOWED_ORIGINS if "*" not in o]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=explicit_origins or ["*"],
        allow_credentials=bool(explicit_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---- Errors ----
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ---- Routers ----
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(pages.router)

    return app
