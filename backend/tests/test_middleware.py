"""
Hearth Butler Backend — Middleware Unit Tests
===============================================

What we test:
    ✅ Client key prefers the first X-Forwarded-For hop
    ✅ Sliding-window limit answers 429 with Retry-After
    ✅ Exempt paths are never limited
    ✅ Access log level follows the status class
"""

import logging
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from hearth.config import settings
from hearth.middleware.logging import level_for_status
from hearth.middleware.rate_limit import RateLimitMiddleware, client_key
from hearth.middleware.request_id import RequestIDMiddleware


def make_request(headers=None, client=("10.0.0.9", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def limited_app() -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)
    return app


class TestClientKey:

    def test_forwarded_for_first_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert client_key(request) == "203.0.113.7"

    def test_falls_back_to_peer(self):
        assert client_key(make_request()) == "10.0.0.9"

    def test_unknown_without_peer(self):
        assert client_key(make_request(client=None)) == "unknown"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_limit_exceeded(self):
        transport = ASGITransport(app=limited_app())
        with patch.object(settings, "rate_limit_requests", 2), \
             patch.object(settings, "rate_limit_window", 60):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                assert (await client.get("/ping")).status_code == 200
                assert (await client.get("/ping")).status_code == 200
                response = await client.get("/ping")

        assert response.status_code == 429
        assert 1 <= int(response.headers["Retry-After"]) <= 61
        assert response.json()["error"] == "rate_limit_exceeded"

    @pytest.mark.asyncio
    async def test_clients_are_counted_separately(self):
        transport = ASGITransport(app=limited_app())
        with patch.object(settings, "rate_limit_requests", 1):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                first = await client.get("/ping", headers={"X-Forwarded-For": "198.51.100.1"})
                second = await client.get("/ping", headers={"X-Forwarded-For": "198.51.100.2"})

        assert first.status_code == 200
        assert second.status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_exempt(self):
        transport = ASGITransport(app=limited_app())
        with patch.object(settings, "rate_limit_requests", 1):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                statuses = [(await client.get("/health")).status_code for _ in range(3)]

        assert statuses == [200, 200, 200]


class TestAccessLogLevel:

    @pytest.mark.parametrize("status,level", [
        (200, logging.INFO),
        (302, logging.INFO),
        (404, logging.WARNING),
        (429, logging.WARNING),
        (503, logging.ERROR),
    ])
    def test_level_for_status(self, status, level):
        assert level_for_status(status) == level
