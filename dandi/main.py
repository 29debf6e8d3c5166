"""Dandi FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from dandi import __version__
from dandi.config import get_settings
from dandi.db import close_db, init_db
from dandi.errors import DandiError, StorageUnavailableError, ValidationError
from dandi.services.http import http_client_manager
from dandi.stores.base import KeyStoreError

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()

    # Startup
    logger.info("dandi.startup", version=__version__, store=settings.store.type)
    if settings.store.type == "sql":
        await init_db()

    await http_client_manager.startup(settings.http)

    yield

    # Shutdown
    logger.info("dandi.shutdown")

    await http_client_manager.shutdown()

    if settings.store.type == "sql":
        await close_db()


def _error_response(request: Request, exc: DandiError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(request_id),
        headers=exc.headers or None,
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Dandi",
        description="API key management and rate-limited GitHub repository summaries",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "x-api-key"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-Request-Id"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    # Error handlers
    @app.exception_handler(DandiError)
    async def dandi_error_handler(request: Request, exc: DandiError):
        """Handle Dandi errors with consistent format."""
        return _error_response(request, exc)

    @app.exception_handler(KeyStoreError)
    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: Exception):
        """Storage faults never leak their detail to the caller."""
        logger.error(
            "store.error",
            path=request.url.path,
            error=str(exc),
            exc_info=exc,
        )
        return _error_response(request, StorageUnavailableError("Storage unavailable"))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Render body/query validation failures as 400 validation_error."""
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_response(
            request,
            ValidationError("Invalid request", details={"errors": errors}),
        )

    # Health check
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    from dandi.api.v1 import router as v1_router

    app.include_router(v1_router, prefix="/v1")

    return app


# Create default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "dandi.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
