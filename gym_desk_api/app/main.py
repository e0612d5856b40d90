"""
Main entrypoint for the Gym Desk Record Store API.

This module assembles the FastAPI application: logging, the injected
SQLite repository, exception handlers rendering the failure envelope,
the health check and the versioned routers.  ``create_app`` builds and
configures the app, which is then instantiated at module import time
as ``app``, e.g.::

    uvicorn gym_desk_api.app.main:app --reload

On startup migrations are applied and the membership expiry sweep runs
once; afterwards it repeats every ``EXPIRY_SWEEP_INTERVAL`` seconds.
"""

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1.endpoints import health
from .api.v1.responses import failure
from .api.v1.router import router as v1_router
from .core.config import Settings, settings
from .core.db import SQLiteRepository, get_database_path, init_db
from .core.errors import GymDeskError
from .core.logging_config import setup_logging
from .services.member_service import MemberService

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


async def run_expiry_sweep(app: FastAPI) -> None:
    expired = await MemberService(app.state.repository, app.state.settings).expire_overdue()
    logger.debug("Expiry sweep finished, %s memberships expired", len(expired))


async def _sweep_periodically(app: FastAPI, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await run_expiry_sweep(app)
        except Exception:
            logger.exception("Periodic expiry sweep failed")


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"success": false, "error": {...}}``."""

    @app.exception_handler(GymDeskError)
    async def domain_error_handler(request: Request, exc: GymDeskError) -> JSONResponse:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=failure("VALIDATION_ERROR", "Validation failed", details))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if app.state.settings.debug else "Internal server error"
        return JSONResponse(status_code=500, content=failure("INTERNAL_ERROR", message))


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    app_settings : Optional[Settings]
        Settings to use instead of the module-level ``settings``
        (tests pass one pointing at a temporary database).

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    app_settings = app_settings or settings
    setup_logging(app_settings.log_level, app_settings.log_file or None)

    app = FastAPI(title=app_settings.project_name, version=app_settings.api_version, debug=app_settings.debug)
    app.state.settings = app_settings
    app.state.repository = SQLiteRepository(get_database_path(app_settings.database_url))
    app.state.sweep_task = None

    register_exception_handlers(app)
    app.include_router(health.router, tags=["health"])
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        init_db(app.state.repository)
        await run_expiry_sweep(app)
        interval = app_settings.expiry_sweep_interval
        if interval > 0:
            app.state.sweep_task = asyncio.create_task(_sweep_periodically(app, interval))
        logger.info("Record Store ready (database %s)", app.state.repository.database_path)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        task = app.state.sweep_task
        if task is not None:
            task.cancel()
            app.state.sweep_task = None
        app.state.repository.close()

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
