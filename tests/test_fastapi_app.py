from __future__ import annotations

import json
import logging
from datetime import datetime

import httpx
import pytest
from fastapi.testclient import TestClient

import bookgen_proxy.serve.fastapi_app as app_mod
from bookgen_proxy.common.config import Settings
from bookgen_proxy.serve.fastapi_app import create_app

from conftest import API_KEY, SECRET, bearer, make_token


def test_root_greeting(client: TestClient) -> None:
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "Hello There!"
    assert r.headers["content-type"].startswith("text/plain")


def test_health_ok() -> None:
    client = TestClient(app_mod.app)
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    parsed = datetime.fromisoformat(data["timestamp"])
    assert parsed.tzinfo is not None


def test_generate_book_relays_text(client: TestClient, upstream, book_body) -> None:
    r = client.post("/generate-book", json=book_body, headers=bearer(make_token()))
    assert r.status_code == 200
    assert r.json() == {"book": "# Chapter 1\n..."}

    assert len(upstream.calls) == 1
    sent = upstream.calls[0]
    assert sent.headers["Authorization"] == f"Bearer {API_KEY}"
    messages = json.loads(sent.content)["input"]["messages"]
    assert "The Lighthouse" in messages[0]["content"]
    assert "A keeper's last night" in messages[0]["content"]


@pytest.mark.parametrize(
    "body",
    [
        {"title": "", "description": "d", "chapters": 3},
        {"title": "   ", "description": "d", "chapters": 3},
        {"title": "t", "description": "", "chapters": 3},
        {"title": "t", "description": "d", "chapters": 0},
        {"title": "t", "description": "d", "chapters": -2},
        {"description": "d", "chapters": 3},
        {},
    ],
)
def test_missing_fields_400(client: TestClient, upstream, body: dict) -> None:
    r = client.post("/generate-book", json=body, headers=bearer(make_token()))
    assert r.status_code == 400
    assert r.json() == {"error": "Title, description, and chapters are required"}
    assert upstream.calls == []


@pytest.mark.parametrize(
    "content",
    [
        b"{not json",
        b"",
        b"[]",
        b'{"title": "t", "description": "d", "chapters": "many"}',
        b'{"title": "t", "description": "d", "chapters": "3"}',
        b'{"title": "t", "description": "d", "chapters": true}',
        b'{"title": "t", "description": "d", "chapters": 2.5}',
    ],
)
def test_malformed_body_400(client: TestClient, upstream, content: bytes) -> None:
    headers = {**bearer(make_token()), "Content-Type": "application/json"}
    r = client.post("/generate-book", content=content, headers=headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request body"}
    assert upstream.calls == []


def test_auth_checked_before_body(client: TestClient, upstream) -> None:
    r = client.post("/generate-book", content=b"{not json")
    assert r.status_code == 401


def test_missing_api_key_500(upstream, book_body) -> None:
    app = create_app(Settings(token_secret=SECRET, api_key=None), transport=upstream.transport)
    r = TestClient(app).post("/generate-book", json=book_body, headers=bearer(make_token()))
    assert r.status_code == 500
    assert r.json() == {"error": "Server configuration error (missing AI API key)"}
    assert upstream.calls == []


def test_upstream_status_is_summarized(
    client: TestClient, upstream, book_body, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO)
    upstream.reply = lambda request: httpx.Response(429, text='{"code":"Throttling","message":"quota secret-ish"}')
    r = client.post("/generate-book", json=book_body, headers=bearer(make_token()))
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate book: upstream service returned status 429"}
    assert "Throttling" not in r.text
    assert "Throttling" in caplog.text
    assert API_KEY not in caplog.text
    failures = [rec for rec in caplog.records if "rejected [" in rec.getMessage()]
    assert len(failures) == 1
    assert failures[0].levelno == logging.ERROR


def test_upstream_incomplete_500(client: TestClient, upstream, book_body) -> None:
    upstream.reply = lambda request: httpx.Response(
        200, json={"output": {"finish_reason": "length", "text": ""}}
    )
    r = client.post("/generate-book", json=book_body, headers=bearer(make_token()))
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate book: generation finished unexpectedly (length)"}


def test_upstream_connect_error_500(client: TestClient, upstream, book_body) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    upstream.reply = refuse
    r = client.post("/generate-book", json=book_body, headers=bearer(make_token()))
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate book: could not reach upstream service"}


def test_cors_preflight_allows_authorization(client: TestClient) -> None:
    r = client.options(
        "/generate-book",
        headers={
            "Origin": "https://books.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert "authorization" in r.headers["access-control-allow-headers"].lower()


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_build_app_applies_log_level(monkeypatch: pytest.MonkeyPatch, restore_root_logging) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("POCKETBASE_TOKEN_SECRET", SECRET)
    monkeypatch.setenv("QWEN_API_KEY", API_KEY)

    built = app_mod.build_app()
    assert built.state.settings.log_level == "DEBUG"
    assert built.state.settings.token_secret == SECRET
    assert logging.getLogger().level == logging.DEBUG


def test_run_server_reuses_module_app() -> None:
    from bookgen_proxy.serve import run_server

    assert run_server.app is app_mod.app
