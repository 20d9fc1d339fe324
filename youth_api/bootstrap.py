"""Process entrypoint: connect to the database, then listen.

Startup runs in two phases. bootstrap() connects (tolerating failure), builds
the app and a configured uvicorn server, and returns a Startup. Startup.serve()
then listens. A failed connect is not an error: the result carries
``db_handle=None`` and the server runs degraded, still answering liveness and
static requests.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import uvicorn
from fastapi import FastAPI
from pymongo import MongoClient

from .config import Settings, get_settings, log_environment_check
from .database import Database
from .logging_conf import get_logger, setup_logging
from .main import create_app

logger = get_logger("api.bootstrap")


@dataclass
class Startup:
    """Outcome of the connect phase plus the not-yet-listening server."""

    settings: Settings
    database: Database
    db_handle: Optional[MongoClient]
    app: FastAPI
    server: uvicorn.Server

    @property
    def degraded(self) -> bool:
        return self.db_handle is None

    async def serve(self) -> None:
        await self.server.serve()


async def bootstrap(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    log: logging.Logger | None = None,
) -> Startup:
    settings = settings or get_settings()
    log = log or logger
    log_environment_check(settings)

    database = database or Database(settings.mongodb_uri)
    db_handle = await database.connect()
    if db_handle is None:
        log.warning(
            "bootstrap.degraded",
            extra={"event": "bootstrap_degraded", "database": database.state.value},
        )

    app = create_app(settings, database)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=settings.log_level.lower(),
    )
    return Startup(
        settings=settings,
        database=database,
        db_handle=db_handle,
        app=app,
        server=uvicorn.Server(config),
    )


async def run(settings: Settings | None = None) -> int:
    """Bootstrap and serve until shutdown; returns the process exit code."""
    startup = await bootstrap(settings)
    logger.info(
        "server.listening",
        extra={
            "event": "server_listening",
            "port": startup.settings.port,
            "environment": startup.settings.node_env,
            "cors_origins": startup.settings.cors_origins_list,
            "degraded": startup.degraded,
        },
    )
    try:
        # uvicorn traps SIGINT/SIGTERM and runs the lifespan shutdown, which
        # closes the database connection.
        await startup.serve()
    except Exception:
        logger.exception("server.crashed", extra={"event": "server_crashed"})
        return 1
    finally:
        startup.database.close()
    return 0


def main() -> None:
    setup_logging()
    try:
        code = asyncio.run(run())
    except KeyboardInterrupt:
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
