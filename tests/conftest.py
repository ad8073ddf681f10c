from __future__ import annotations

import time
from typing import Any, Callable

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from bookgen_proxy.common.config import Settings
from bookgen_proxy.serve.fastapi_app import create_app

SECRET = "test-signing-secret-0123456789abcdef"
API_KEY = "sk-test-qwen"


def make_token(
    secret: str = SECRET,
    algorithm: str = "HS256",
    **claims: Any,
) -> str:
    payload: dict[str, Any] = {"id": "user123", "type": "auth", "exp": int(time.time()) + 3600}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm=algorithm)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class Upstream:
    """Records calls and answers with whatever ``reply`` returns."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self.reply: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"output": {"finish_reason": "stop", "text": "# Chapter 1\n..."}}
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.reply(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def settings() -> Settings:
    return Settings(token_secret=SECRET, api_key=API_KEY)


@pytest.fixture
def client(settings: Settings, upstream: Upstream) -> TestClient:
    return TestClient(create_app(settings, transport=upstream.transport))


@pytest.fixture
def book_body() -> dict[str, Any]:
    return {"title": "The Lighthouse", "description": "A keeper's last night", "chapters": 3}
