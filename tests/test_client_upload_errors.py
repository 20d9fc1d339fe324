"""
Tests for the upload helper, error description and the CLI probe.
"""

import httpx
import pytest

from youth_client import (
    ApiClient,
    ClientConfig,
    ErrorKind,
    MemoryStorage,
    classify_error,
    describe_error,
    upload_file,
)
from youth_client.cli import parse_args
from youth_client.client import TOKEN_KEY
from youth_client.errors import DEFAULT_ERROR_MESSAGE
from youth_client.probe import run_probe

BASE_URL = "http://api.test/api"


def status_error(status_code, body=None):
    request = httpx.Request("POST", f"{BASE_URL}/jobs")
    response = httpx.Response(status_code, json=body, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


class TestUpload:
    @pytest.mark.asyncio
    async def test_uploads_multipart_with_progress(self):
        seen = {}

        def handler(request):
            seen["content_type"] = request.headers["Content-Type"]
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = request.content
            return httpx.Response(201, json={"path": "/uploads/cv.pdf"})

        progress = []
        client = ApiClient(
            ClientConfig(base_url=BASE_URL),
            storage=MemoryStorage({TOKEN_KEY: "tok"}),
            transport=httpx.MockTransport(handler),
        )
        async with client:
            response = await upload_file(
                client, ("cv.pdf", b"%PDF-1.4 resume"), "/users/resume", progress.append
            )

        assert response.json() == {"path": "/uploads/cv.pdf"}
        assert seen["content_type"].startswith("multipart/form-data; boundary=")
        assert seen["auth"] == "Bearer tok"
        assert b'name="file"; filename="cv.pdf"' in seen["body"]
        assert b"%PDF-1.4 resume" in seen["body"]
        assert progress
        assert progress == sorted(progress)
        assert progress[-1] == 100

    @pytest.mark.asyncio
    async def test_uploads_from_path_without_callback(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG fake")
        seen = {}

        def handler(request):
            seen["body"] = request.content
            return httpx.Response(200)

        async with ApiClient(
            ClientConfig(base_url=BASE_URL), transport=httpx.MockTransport(handler)
        ) as client:
            await upload_file(client, path, "/users/avatar")

        assert b'filename="photo.png"' in seen["body"]

    @pytest.mark.asyncio
    async def test_failed_upload_goes_through_error_interceptor(self, caplog):
        async with ApiClient(
            ClientConfig(base_url=BASE_URL),
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        ) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await upload_file(client, ("a.txt", b"hi"), "/uploads")

        assert any(getattr(r, "event", None) == "api_server_error" for r in caplog.records)


class TestErrors:
    def test_classify(self):
        request = httpx.Request("GET", BASE_URL)
        assert classify_error(status_error(400)) is ErrorKind.response
        assert classify_error(httpx.ConnectError("x", request=request)) is ErrorKind.network
        assert classify_error(httpx.ReadTimeout("x", request=request)) is ErrorKind.network
        assert classify_error(httpx.UnsupportedProtocol("x", request=request)) is ErrorKind.setup
        assert classify_error(TypeError("x")) is ErrorKind.setup

    def test_describe_prefers_server_message(self):
        assert describe_error(status_error(400, {"message": "Email taken"})) == "Email taken"

    def test_describe_joins_errors(self):
        error = status_error(422, {"errors": ["Title is required", "Salary must be positive"]})
        assert describe_error(error) == "Title is required, Salary must be positive"

    def test_describe_falls_back_to_exception_text(self):
        request = httpx.Request("GET", BASE_URL)
        assert describe_error(httpx.ConnectError("refused", request=request)) == "refused"

    def test_describe_generic_fallback(self):
        assert describe_error(RuntimeError()) == DEFAULT_ERROR_MESSAGE

    def test_describe_calls_on_error(self):
        messages = []
        describe_error(status_error(403, {"message": "Forbidden"}), messages.append)
        assert messages == ["Forbidden"]


class TestProbe:
    def test_parse_args_defaults(self, monkeypatch):
        monkeypatch.delenv("API_URL", raising=False)
        args = parse_args([])
        assert args.command == "health"
        assert args.base_url == "http://localhost:5000/api"
        assert args.attempts == 3

    @pytest.mark.asyncio
    async def test_health_ok_even_when_database_down(self):
        def handler(request):
            assert request.url.path == "/api/health"
            return httpx.Response(200, json={"status": "OK", "database": "Disconnected"})

        code = await run_probe(
            "health", base_url=BASE_URL, delay=0, transport=httpx.MockTransport(handler)
        )
        assert code == 0

    @pytest.mark.asyncio
    async def test_health_can_require_database(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"status": "OK", "database": "Disconnected"})
        )
        code = await run_probe(
            "health", base_url=BASE_URL, delay=0, require_database=True, transport=transport
        )
        assert code == 1

    @pytest.mark.asyncio
    async def test_health_retries_then_fails(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        code = await run_probe(
            "health", base_url=BASE_URL, attempts=2, delay=0, transport=httpx.MockTransport(handler)
        )
        assert code == 1
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_status_fetches_banner(self):
        def handler(request):
            assert request.url.path in ("/api", "/api/")
            return httpx.Response(200, json={"message": "Youth Employment Platform API"})

        code = await run_probe(
            "status", base_url=BASE_URL, delay=0, transport=httpx.MockTransport(handler)
        )
        assert code == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>ok</html>"),
            httpx.Response(200, json=["OK"]),
        ],
    )
    async def test_health_with_unexpected_body_fails_cleanly(self, response, caplog):
        code = await run_probe(
            "health",
            base_url=BASE_URL,
            delay=0,
            transport=httpx.MockTransport(lambda request: response),
        )
        assert code == 1
        assert any(getattr(r, "event", None) == "probe_failed" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_status_with_non_json_body_fails_cleanly(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="plain"))
        code = await run_probe("status", base_url=BASE_URL, delay=0, transport=transport)
        assert code == 1
