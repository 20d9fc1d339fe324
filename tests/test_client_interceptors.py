"""
Tests for the ApiClient's outgoing and incoming interception stages.
"""

import json
import logging

import httpx
import pytest

from youth_client import ApiClient, ClientConfig, Location, MemoryStorage
from youth_client.client import TOKEN_KEY, USER_KEY
from youth_client.errors import ErrorKind

BASE_URL = "http://api.test/api"


def make_client(handler, *, storage=None, location=None):
    return ApiClient(
        ClientConfig(base_url=BASE_URL),
        storage=storage if storage is not None else MemoryStorage(),
        location=location or Location(),
        transport=httpx.MockTransport(handler),
    )


def respond(status_code, body=None):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body if body is not None else {})

    return handler


def signed_in_storage():
    return MemoryStorage({TOKEN_KEY: "tok-123", USER_KEY: json.dumps({"name": "Ama"})})


def events(caplog, name):
    return [r for r in caplog.records if getattr(r, "event", None) == name]


@pytest.mark.asyncio
async def test_attaches_bearer_token_from_storage():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers.get("Content-Type")
        return httpx.Response(200, json={"ok": True})

    async with make_client(handler, storage=signed_in_storage()) as client:
        response = await client.post("/jobs", json={"title": "Intern"})

    assert response.status_code == 200
    assert seen["auth"] == "Bearer tok-123"
    assert seen["url"] == "http://api.test/api/jobs"
    assert seen["content_type"] == "application/json"


@pytest.mark.asyncio
async def test_no_token_means_no_authorization_header():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200)

    async with make_client(handler) as client:
        await client.get("/jobs")

    assert seen["auth"] is None


@pytest.mark.asyncio
async def test_success_is_logged_and_returned_unchanged(caplog):
    async with make_client(respond(200, {"items": [1, 2]})) as client:
        with caplog.at_level(logging.INFO, logger="client.api"):
            response = await client.get("/jobs", params={"page": 2})

    assert response.json() == {"items": [1, 2]}
    sent = events(caplog, "request_send")[0]
    assert sent.method == "GET"
    assert sent.url == "http://api.test/api/jobs?page=2"
    ok = events(caplog, "response_ok")[0]
    assert ok.status_code == 200


@pytest.mark.asyncio
async def test_request_payload_is_logged(caplog):
    async with make_client(respond(201)) as client:
        with caplog.at_level(logging.INFO, logger="client.api"):
            await client.post("/applications", json={"job": "j1"})

    assert json.loads(events(caplog, "request_send")[0].payload) == {"job": "j1"}


@pytest.mark.asyncio
async def test_401_clears_credentials_and_redirects_once():
    storage = signed_in_storage()
    location = Location(pathname="/dashboard")
    client = make_client(respond(401, {"message": "Token expired"}), storage=storage, location=location)
    client.config = client.config.with_authorization("tok-123")

    async with client:
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.get("/users/me")

    assert exc_info.value.response.status_code == 401
    assert storage.get_item(TOKEN_KEY) is None
    assert storage.get_item(USER_KEY) is None
    assert client.config.authorization is None
    assert location.history == ["/login"]
    assert location.pathname == "/login"


@pytest.mark.asyncio
async def test_401_on_login_page_does_not_navigate():
    location = Location(pathname="/login")
    async with make_client(respond(401), storage=signed_in_storage(), location=location) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.post("/auth/login", json={"email": "a@b.c"})

    assert location.history == []


@pytest.mark.asyncio
async def test_repeated_401_is_safe_and_navigates_once():
    storage = signed_in_storage()
    location = Location(pathname="/jobs")
    async with make_client(respond(401), storage=storage, location=location) as client:
        for _ in range(2):
            with pytest.raises(httpx.HTTPStatusError):
                await client.get("/jobs")

    assert location.history == ["/login"]
    assert TOKEN_KEY not in storage


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code,event",
    [(403, "api_forbidden"), (404, "api_not_found"), (500, "api_server_error")],
)
async def test_categorized_statuses_do_not_touch_state(status_code, event, caplog):
    storage = signed_in_storage()
    location = Location(pathname="/jobs")
    async with make_client(respond(status_code), storage=storage, location=location) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.get("/jobs/1")

    assert len(events(caplog, event)) == 1
    assert storage.get_item(TOKEN_KEY) == "tok-123"
    assert location.history == []


@pytest.mark.asyncio
async def test_other_status_logs_server_message(caplog):
    async with make_client(respond(422, {"message": "Title is required"})) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.post("/jobs", json={})

    detail = events(caplog, "api_http_error")[0].detail
    assert detail == "Server error (422): Title is required"


@pytest.mark.asyncio
async def test_network_error_is_reraised_unchanged(caplog):
    raised = {}

    def handler(request):
        raised["error"] = httpx.ConnectError("connection refused", request=request)
        raise raised["error"]

    client = make_client(handler)
    async with client:
        with pytest.raises(httpx.ConnectError) as exc_info:
            await client.get("/jobs")

    assert exc_info.value is raised["error"]
    assert len(events(caplog, "api_network_error")) == 1


@pytest.mark.asyncio
async def test_timeout_is_a_network_error(caplog):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_client(handler) as client:
        with pytest.raises(httpx.ReadTimeout):
            await client.get("/jobs")

    assert len(events(caplog, "api_network_error")) == 1


@pytest.mark.asyncio
async def test_request_construction_error_is_setup_error(caplog):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    async with make_client(handler) as client:
        with pytest.raises(TypeError):
            await client.post("/jobs", json={"when": object()})

    assert calls == []
    assert len(events(caplog, "api_setup_error")) == 1


def test_on_error_returns_kind():
    client = make_client(respond(200))
    request = httpx.Request("GET", f"{BASE_URL}/jobs")
    response = httpx.Response(404, request=request)
    error = httpx.HTTPStatusError("not found", request=request, response=response)

    assert client.on_error(error, request) is ErrorKind.response
    assert client.on_error(httpx.ConnectTimeout("slow", request=request), request) is ErrorKind.network
    assert client.on_error(ValueError("bad"), None) is ErrorKind.setup


@pytest.mark.asyncio
async def test_default_header_config_is_snapshotted_per_request():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200)

    client = make_client(handler)
    original = client.config
    client.config = original.with_authorization("abc")

    async with client:
        await client.get("/jobs")

    assert seen == ["Bearer abc"]
    assert original.authorization is None
