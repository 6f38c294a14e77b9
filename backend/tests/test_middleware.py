"""
CookShare Backend — Middleware Tests
======================================

What:  Request ID propagation, rate limiting and access-log levels.
How:   A throwaway FastAPI app carries only the middleware under test, so
       the limits can be tightened without touching the real app.
"""

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from cookshare.config import settings
from cookshare.middleware.logging import _level_for
from cookshare.middleware.rate_limit import RateLimitMiddleware
from cookshare.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var


def build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/api/ping")
    async def ping():
        return {"request_id": request_id_var.get("")}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)
    return app


class TestRequestID:

    def setup_method(self):
        self.app = build_app()

    @pytest.mark.asyncio
    async def test_generated_id_is_echoed(self):
        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            response = await client.get("/api/ping")

        rid = response.headers[REQUEST_ID_HEADER]
        assert len(rid) == 8
        assert response.json()["request_id"] == rid

    @pytest.mark.asyncio
    async def test_client_id_is_reused(self):
        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            response = await client.get("/api/ping", headers={REQUEST_ID_HEADER: "trace-123"})

        assert response.headers[REQUEST_ID_HEADER] == "trace-123"
        assert response.json()["request_id"] == "trace-123"


class TestRateLimit:

    def setup_method(self):
        self.app = build_app()

    @pytest.mark.asyncio
    async def test_limit_returns_429_with_retry_after(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)

        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            assert (await client.get("/api/ping")).status_code == 200
            assert (await client.get("/api/ping")).status_code == 200
            limited = await client.get("/api/ping")

        assert limited.status_code == 429
        assert limited.json()["error"] == "rate_limit_exceeded"
        assert int(limited.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_health_is_not_limited(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 1)

        async with AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test") as client:
            for _ in range(3):
                assert (await client.get("/health")).status_code == 200


class TestAccessLogLevel:

    @pytest.mark.parametrize(
        "status, level",
        [(200, logging.INFO), (201, logging.INFO), (404, logging.WARNING), (503, logging.ERROR)],
    )
    def test_level_follows_status_class(self, status, level):
        assert _level_for(status) == level
