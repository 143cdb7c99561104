"""FastAPI application entrypoint for the Expat Vault service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from expatvault.api.middleware.logging import LoggingMiddleware
from expatvault.api.middleware.ratelimit import RateLimitMiddleware
from expatvault.api.routes import admin, reminders, vault
from expatvault.core.config import settings
from expatvault.core.database import database_manager
from expatvault.core.exceptions import ApplicationError, PersistenceError
from expatvault.core.observability import setup_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Initialize shared resources on startup and tear them down on shutdown."""

    await database_manager.initialize()
    await database_manager.ensure_indexes()

    try:
        yield
    finally:
        await database_manager.close()


app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

setup_tracing(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RateLimitMiddleware, requests=settings.RATE_LIMIT_PER_MINUTE, window_seconds=60)

# Routers
app.include_router(vault.router, prefix="/api")
app.include_router(reminders.router, prefix="/api")
app.include_router(admin.router, prefix="/api")

app.mount("/metrics", make_asgi_app())


@app.exception_handler(ApplicationError)
async def handle_application_error(request: Request, exc: ApplicationError):
    """Return standardized responses for application layer exceptions."""

    if isinstance(exc, PersistenceError):
        logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message, "code": exc.code})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(_: Request, exc: RequestValidationError):
    """Malformed request shapes are client errors, reported as 400."""

    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": errors, "code": "validation_error"},
    )
