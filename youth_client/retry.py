from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .logging_conf import get_logger

T = TypeVar("T")

logger = get_logger("client.retry")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    log: logging.Logger | None = None,
) -> T:
    """Await ``operation()`` up to ``max_attempts`` times.

    Backoff is linear: after failed attempt ``n`` it waits ``base_delay * n``
    seconds. Every exception is retried the same way; the last attempt's
    exception propagates unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    log = log or logger

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_attempts:
                raise
            delay = base_delay * attempt
            log.warning(
                "retry.scheduled",
                extra={
                    "event": "retry_scheduled",
                    "attempt": attempt,
                    "next_attempt": attempt + 1,
                    "delay_s": delay,
                    "error": str(e),
                },
            )
            await sleep(delay)
            attempt += 1
