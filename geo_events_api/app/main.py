"""
Main entrypoint for the Geo Events API.

This module assembles the FastAPI application, sets up logging,
registers the error handlers and includes versioned routers.
``create_app`` builds the app, which is then instantiated at module
import time as ``app`` so it can be served directly, e.g.::

    uvicorn geo_events_api.app.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.errors import AuthError, InvalidFilterError, ServiceError, ValidationError
from .core.logging_config import setup_logging
from .services.notification_service import get_dispatcher

logger = logging.getLogger(__name__)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ``ServiceError`` as a JSON body with its HTTP status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def _field_name(loc) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts) or "body"


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests through the same error types as the services.

    Bad query parameters become ``InvalidFilterError``; anything else
    (usually the JSON body) becomes a ``ValidationError`` listing every
    offending field.
    """
    errors = exc.errors()
    query_errors = [error for error in errors if (error.get("loc") or ("",))[0] == "query"]
    if query_errors:
        name = _field_name(query_errors[0]["loc"])
        error: ServiceError = InvalidFilterError(f"{name}: {query_errors[0]['msg']}", parameter=name)
    else:
        error = ValidationError(
            [{"field": _field_name(item.get("loc", ())), "message": item.get("msg", "")} for item in errors]
        )
    return await service_error_handler(request, error)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Logging first so that everything below can log.
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and applies migrations.
        init_db()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await get_dispatcher().drain()

    return app


app = create_app()
