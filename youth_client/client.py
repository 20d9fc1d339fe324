"""The configured API client and its two interception stages.

Ordering for one call: on_request() finishes before the request is sent, and
on_response() or on_error() finishes before the caller sees the result. The
original exception always reaches the caller after on_error() has logged it
and applied its side effects.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Optional

import httpx

from .config import AUTHORIZATION, ClientConfig
from .errors import ErrorKind, classify_error, response_body, server_message
from .logging_conf import get_logger
from .storage import MemoryStorage, Storage
from .types import LOGIN_PATH, Location

TOKEN_KEY = "token"
USER_KEY = "user"

_MAX_LOGGED_PAYLOAD = 1000

ProgressCallback = Callable[[int, int], None]


class _UploadProgressStream(httpx.AsyncByteStream):
    """Wraps a request body and reports (bytes_sent, total) per chunk."""

    def __init__(self, stream: Any, total: int, callback: ProgressCallback) -> None:
        self._stream = stream
        self._total = total
        self._callback = callback

    async def __aiter__(self) -> AsyncIterator[bytes]:
        sent = 0
        async for chunk in self._stream:
            sent += len(chunk)
            self._callback(sent, self._total)
            yield chunk

    async def aclose(self) -> None:
        close = getattr(self._stream, "aclose", None)
        if close is not None:
            await close()


def _payload(request: httpx.Request) -> Optional[str]:
    try:
        content = request.content
    except httpx.RequestNotRead:
        return "<stream>"
    if not content:
        return None
    return content[:_MAX_LOGGED_PAYLOAD].decode("utf-8", errors="replace")


class ApiClient:
    """Single httpx-backed client for the platform API.

    - Outgoing: attaches ``Authorization: Bearer <token>`` from storage
    - Incoming: logs, classifies failures, and on 401 clears stored
      credentials and navigates to the login page
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        storage: Storage | None = None,
        location: Location | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or get_logger("client.api")
        self.config = config or ClientConfig.from_env(self.logger)
        self.storage = storage if storage is not None else MemoryStorage()
        self.location = location or Location()
        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def clear_credentials(self) -> None:
        """Drop stored token/user and the default Authorization header."""
        self.storage.remove_item(TOKEN_KEY)
        self.storage.remove_item(USER_KEY)
        self.config = self.config.without_authorization()

    # ------------------------
    # Interception stages
    # ------------------------

    def build_request(
        self,
        method: str,
        url: str,
        config: ClientConfig,
        *,
        headers: dict[str, str] | None = None,
        files: Any = None,
        **kwargs: Any,
    ) -> httpx.Request:
        merged = dict(config.headers)
        if files is not None:
            # multipart needs its own Content-Type with the boundary.
            merged.pop("Content-Type", None)
        merged.update(headers or {})
        return self._http.build_request(
            method, url, headers=merged, files=files, timeout=config.timeout, **kwargs
        )

    def on_request(self, request: httpx.Request) -> httpx.Request:
        token = self.storage.get_item(TOKEN_KEY)
        if token:
            request.headers[AUTHORIZATION] = f"Bearer {token}"
        self.logger.info(
            "request.send",
            extra={
                "event": "request_send",
                "method": request.method,
                "url": str(request.url),
                "payload": _payload(request),
            },
        )
        return request

    def on_response(self, response: httpx.Response) -> httpx.Response:
        self.logger.info(
            "response.ok",
            extra={
                "event": "response_ok",
                "method": response.request.method,
                "url": str(response.request.url),
                "status_code": response.status_code,
            },
        )
        return response

    def on_error(self, error: Exception, request: httpx.Request | None = None) -> ErrorKind:
        """Log and classify a failure, applying the 401 side effects.

        Never raises; the caller re-raises ``error`` afterwards.
        """
        kind = classify_error(error)
        url = str(request.url) if request is not None else None
        method = request.method if request is not None else None

        if kind is ErrorKind.response:
            response = error.response  # type: ignore[attr-defined]
            self._on_error_status(response, method, url)
        elif kind is ErrorKind.network:
            self.logger.error(
                "api.network_error",
                extra={
                    "event": "api_network_error",
                    "method": method,
                    "url": url,
                    "error_type": type(error).__name__,
                    "detail": "Network error: No response from server. Please check your connection.",
                },
            )
        else:
            self.logger.error(
                "api.setup_error",
                extra={
                    "event": "api_setup_error",
                    "method": method,
                    "url": url,
                    "error_type": type(error).__name__,
                    "detail": f"Request setup error: {error}",
                },
            )
        return kind

    def _on_error_status(
        self, response: httpx.Response, method: Optional[str], url: Optional[str]
    ) -> None:
        status = response.status_code
        fields = {"method": method, "url": url, "status_code": status}
        self.logger.error(
            "api.error",
            extra={"event": "api_error", **fields, "response": response_body(response)},
        )

        if status == 401:
            self.clear_credentials()
            redirect = LOGIN_PATH not in self.location.pathname
            self.logger.warning(
                "api.unauthorized",
                extra={"event": "api_unauthorized", **fields, "redirect": redirect},
            )
            if redirect:
                self.location.assign(LOGIN_PATH)
        elif status == 403:
            self.logger.error(
                "api.forbidden",
                extra={
                    "event": "api_forbidden",
                    **fields,
                    "detail": "Access denied: You do not have permission for this action",
                },
            )
        elif status == 404:
            self.logger.error(
                "api.not_found",
                extra={"event": "api_not_found", **fields, "detail": f"Resource not found: {url}"},
            )
        elif status == 500:
            self.logger.error(
                "api.server_error",
                extra={
                    "event": "api_server_error",
                    **fields,
                    "detail": "Server error occurred. Please try again later.",
                },
            )
        else:
            self.logger.error(
                "api.http_error",
                extra={
                    "event": "api_http_error",
                    **fields,
                    "detail": f"Server error ({status}): {server_message(response) or 'Unknown error'}",
                },
            )

    # ------------------------
    # Requests
    # ------------------------

    async def request(
        self,
        method: str,
        url: str,
        *,
        on_upload_progress: ProgressCallback | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request through both interception stages.

        Extra keyword arguments (json, params, files, data, headers) go to
        httpx. Raises the original httpx error after on_error().
        """
        config = self.config
        request: httpx.Request | None = None
        try:
            request = self.on_request(self.build_request(method, url, config, **kwargs))
            if on_upload_progress is not None:
                total = int(request.headers.get("Content-Length") or 0)
                request.stream = _UploadProgressStream(request.stream, total, on_upload_progress)
            response = await self._http.send(request)
            response.raise_for_status()
        except Exception as exc:
            self.on_error(exc, request)
            raise
        return self.on_response(response)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)
