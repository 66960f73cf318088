"""
FastAPI application factory.

Wires the public and admin routers, CORS for the marketing site, a
request-id middleware that tags every log line for one request, and the
mapping from application errors to HTTP status codes.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agency.api.admin import router as admin_router
from agency.api.public import router as public_router
from agency.backend.client import SupabaseClient
from agency.backend.memory import InMemoryBackend
from agency.calendar_sync.client import GoogleCalendarClient
from agency.config import settings
from agency.errors import (
    AgencyError,
    NotFoundError,
    ServiceError,
    SlotUnavailableError,
    ValidationError,
)
from agency.logging_context import get_request_id, set_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

ERROR_STATUS: list[tuple[type[AgencyError], int]] = [
    (SlotUnavailableError, 409),
    (ValidationError, 422),
    (NotFoundError, 404),
    (ServiceError, 502),
    (AgencyError, 500),
]


def _default_backend():
    if settings.backend.is_configured:
        return SupabaseClient.from_config(settings.backend)
    logger.warning("Backend not configured; using in-memory tables (data is not persisted)")
    return InMemoryBackend()


def _error_handler(status_code: int):
    async def handle(request: Request, exc: AgencyError) -> JSONResponse:
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%s): %s",
                        request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.to_dict(), "request_id": get_request_id()},
        )
    return handle


def create_app(backend=None, calendar: Optional[GoogleCalendarClient] = None) -> FastAPI:
    """Build the API.

    ``backend`` and ``calendar`` default to the configured Supabase project
    and Google Calendar; pass them explicitly to run against other stores.
    """
    owns_backend = backend is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.backend = backend if backend is not None else _default_backend()
        app.state.calendar = (
            calendar if calendar is not None else GoogleCalendarClient.from_config(settings.calendar)
        )
        logger.info("%s API started", settings.app_name)
        yield
        if owns_backend:
            await app.state.backend.close()

    app = FastAPI(title=f"{settings.business.name} API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info("%s %s -> %d (%.0f ms)",
                    request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    for error_type, status_code in ERROR_STATUS:
        app.add_exception_handler(error_type, _error_handler(status_code))

    app.include_router(public_router)
    app.include_router(admin_router)
    return app
