"""FastAPI app factory: CORS, request logging, status endpoints and route groups."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .database import Database, DatabaseUnavailableError
from .logging_conf import get_logger, setup_logging
from .models import ApiStatus, HealthStatus
from .routes import default_route_groups

API_MESSAGE = "Youth Employment Platform API"

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization", "X-Requested-With", "Accept"]
CORS_EXPOSE_HEADERS = ["Content-Range", "X-Content-Range"]

setup_logging()
logger = get_logger("api")


def _timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    *,
    route_groups: Mapping[str, APIRouter] | None = None,
    connect_on_startup: bool = False,
    log: logging.Logger | None = None,
) -> FastAPI:
    """Build the ASGI app.

    The database handle is stored on ``app.state.database`` and its state is
    read per request. With ``connect_on_startup`` the lifespan performs the
    (non-fatal) connect itself; bootstrap() connects before building the app
    and leaves it off.
    """
    settings = settings or get_settings()
    database = database or Database(settings.mongodb_uri)
    route_groups = default_route_groups() if route_groups is None else route_groups
    log = log or logger

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("startup", extra={"event": "startup", "environment": settings.node_env})
        if connect_on_startup:
            await database.connect()
        try:
            yield
        finally:
            database.close()
            log.info("shutdown", extra={"event": "shutdown"})

    app = FastAPI(title=API_MESSAGE, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """Log request start/end with a correlation id echoed as X-Request-ID."""
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id

        start = time.perf_counter()
        log.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            log.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "method": request.method,
                    "path": request.url.path,
                    "request_id": request_id,
                },
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        log.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
        expose_headers=CORS_EXPOSE_HEADERS,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Clients read a top-level "message", as the platform's frontend expects.
        content = {"message": exc.detail} if isinstance(exc.detail, str) else {
            "message": "Request failed",
            "detail": exc.detail,
        }
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(DatabaseUnavailableError)
    @app.exception_handler(PyMongoError)
    async def database_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log.warning(
            "database.unavailable",
            extra={
                "event": "database_unavailable",
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"message": "Database unavailable"},
        )

    @app.get("/api", response_model=ApiStatus, summary="Service banner")
    async def api_status() -> ApiStatus:
        return ApiStatus(
            message=API_MESSAGE,
            timestamp=_timestamp(),
            environment=settings.node_env,
            database=database.state,
        )

    @app.get("/api/health", response_model=HealthStatus, summary="Liveness check")
    async def health() -> HealthStatus:
        return HealthStatus(
            message="Server is running",
            timestamp=_timestamp(),
            environment=settings.node_env,
            database=database.state,
        )

    for name, router in route_groups.items():
        app.include_router(router, prefix=f"/api/{name}", tags=[name])

    # Missing files under /uploads are a 404, so the directory has to exist.
    Path(settings.uploads_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")

    return app


# ASGI entrypoint for uvicorn: `uvicorn youth_api.main:app --port 5000`
app = create_app(connect_on_startup=True)
