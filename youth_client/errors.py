"""Failure classification shared by the interceptor and the callers.

Every failure of a request lands in exactly one ErrorKind:

- RESPONSE: the server answered with a non-success status
- NETWORK:  the request went out but no response came back (timeouts included)
- SETUP:    the request could not be built or dispatched locally
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

import httpx

from .logging_conf import get_logger

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"

logger = get_logger("client.errors")


class ErrorKind(str, Enum):
    response = "response"
    network = "network"
    setup = "setup"


def classify_error(error: BaseException) -> ErrorKind:
    if isinstance(error, httpx.HTTPStatusError):
        return ErrorKind.response
    # Both are raised before anything reaches the wire.
    if isinstance(error, (httpx.UnsupportedProtocol, httpx.LocalProtocolError)):
        return ErrorKind.setup
    if isinstance(error, httpx.TransportError):
        return ErrorKind.network
    return ErrorKind.setup


def response_body(response: httpx.Response) -> Any:
    """Decoded JSON body, else the raw text, else None."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def server_message(response: httpx.Response) -> Optional[str]:
    body = response_body(response)
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None


def describe_error(
    error: BaseException,
    on_error: Callable[[str], None] | None = None,
    *,
    log: logging.Logger | None = None,
) -> str:
    """Turn a failed call into a user-facing message.

    Precedence: body ``message``, then body ``errors`` joined by ", ", then the
    exception text, then a generic fallback. The message is logged and, when
    given, handed to ``on_error``.
    """
    message = DEFAULT_ERROR_MESSAGE
    response = error.response if isinstance(error, httpx.HTTPStatusError) else None
    body = response_body(response) if response is not None else None

    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])
    elif isinstance(body, dict) and body.get("errors"):
        errors = body["errors"]
        message = ", ".join(str(e) for e in errors) if isinstance(errors, list) else str(errors)
    elif str(error):
        message = str(error)

    (log or logger).error("api.error_message", extra={"event": "api_error_message", "detail": message})
    if on_error is not None:
        on_error(message)
    return message
