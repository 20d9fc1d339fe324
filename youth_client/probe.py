#!/usr/bin/env python3
"""Command-line probe against a running API.

- ``health``: GET /health with retry; exit 0 when the server reports OK
- ``status``: GET the API banner and log it
Both log one summary record and exit 1 on any failure.
"""
from __future__ import annotations

import asyncio
import sys

import httpx

from .cli import parse_args
from .client import ApiClient
from .config import ClientConfig
from .logging_conf import get_logger, setup_logging
from .retry import with_retry
from .types import HealthCheckError

setup_logging()
logger = get_logger("client.probe")


def _json_object(response: httpx.Response) -> dict:
    try:
        payload = response.json()
    except ValueError as e:
        raise HealthCheckError(f"response body is not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise HealthCheckError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


async def check_health(
    client: ApiClient, *, attempts: int = 3, delay: float = 1.0, require_database: bool = False
) -> dict:
    """Return the health payload or raise HealthCheckError / the httpx error."""
    response = await with_retry(lambda: client.get("/health"), attempts, delay)
    payload = _json_object(response)
    if payload.get("status") != "OK":
        raise HealthCheckError(f"unexpected health status: {payload.get('status')!r}")
    if require_database and payload.get("database") != "Connected":
        raise HealthCheckError(f"database is {payload.get('database')}")
    return payload


async def fetch_status(client: ApiClient, *, attempts: int = 3, delay: float = 1.0) -> dict:
    response = await with_retry(lambda: client.get(""), attempts, delay)
    return _json_object(response)


async def run_probe(
    command: str,
    *,
    base_url: str,
    attempts: int = 3,
    delay: float = 1.0,
    require_database: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    async with ApiClient(ClientConfig(base_url=base_url), transport=transport) as client:
        try:
            if command == "health":
                payload = await check_health(
                    client, attempts=attempts, delay=delay, require_database=require_database
                )
            else:
                payload = await fetch_status(client, attempts=attempts, delay=delay)
        except (httpx.HTTPError, HealthCheckError) as e:
            logger.error(
                "probe.failed",
                extra={"event": "probe_failed", "command": command, "error": str(e)},
            )
            return 1
    logger.info("probe.ok", extra={"event": "probe_ok", "command": command, "result": payload})
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    code = asyncio.run(
        run_probe(
            args.command,
            base_url=args.base_url,
            attempts=args.attempts,
            delay=args.delay,
            require_database=args.require_database,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
