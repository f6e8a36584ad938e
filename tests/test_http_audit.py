"""
Test Suite: HTTP Audit Recorder
===============================

One HTTP entry per request, recorded once the response has been fully
sent. Failures anywhere in the audit path leave responses unchanged.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.responses import StreamingResponse

from campeiro.data.memory import MemoryRepository
from campeiro.gateway.app import create_app
from campeiro.gateway.http_audit import HttpAuditMiddleware
from campeiro.gateway.request_context import RequestContextMiddleware
from campeiro.observability.audit import AuditSink

from conftest import ANA, audit_entries


def _streaming_app(sink: AuditSink) -> FastAPI:
    api = FastAPI()
    api.add_middleware(HttpAuditMiddleware, sink=sink)
    api.add_middleware(RequestContextMiddleware, log_requests=False)

    @api.get("/stream")
    async def stream():
        async def chunks():
            for n in range(3):
                await asyncio.sleep(0.02)
                yield f"chunk-{n}\n".encode()

        return StreamingResponse(chunks(), media_type="text/plain")

    @api.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    return api


class TestHttpEntries:

    @pytest.mark.asyncio
    async def test_one_entry_per_request(self, client, store):
        await client.get("/health")
        await client.get("/api/auth/does-not-exist")

        entries = await audit_entries(store, "HTTP")
        assert [e["message"]["extra"]["status"] for e in entries] == [200, 404]
        first = entries[0]["message"]["extra"]
        assert first["method"] == "GET"
        assert first["path"] == "/health"
        assert first["ms"] >= 0

    @pytest.mark.asyncio
    async def test_entry_carries_request_id(self, client, store):
        response = await client.get("/health")

        (entry,) = await audit_entries(store, "HTTP")
        assert entry["request_id"] == response.headers["X-Request-ID"]
        assert entry["ip_address"] == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_entry_attributed_to_authenticated_user(self, client, store):
        response = await client.post("/api/auth/register", json=ANA)
        user_id = response.json()["user"]["id"]

        (entry,) = await audit_entries(store, "HTTP")
        assert entry["user_id"] == user_id
        assert entry["message"]["extra"]["status"] == 201

    @pytest.mark.asyncio
    async def test_streaming_duration_covers_whole_body(self):
        sink = AuditSink(MemoryRepository("audit_logs"))
        transport = httpx.ASGITransport(app=_streaming_app(sink))
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/stream")
        await sink.drain()

        assert response.text == "chunk-0\nchunk-1\nchunk-2\n"
        (entry,) = await sink.repository.find_many()
        assert entry["message"]["extra"]["status"] == 200
        assert entry["message"]["extra"]["ms"] >= 50

    @pytest.mark.asyncio
    async def test_unhandled_exception_recorded_as_500(self):
        sink = AuditSink(MemoryRepository("audit_logs"))
        transport = httpx.ASGITransport(app=_streaming_app(sink), raise_app_exceptions=False)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/boom")
        await sink.drain()

        assert response.status_code == 500
        (entry,) = await sink.repository.find_many()
        assert entry["message"]["extra"]["status"] == 500
        assert entry["message"]["extra"]["path"] == "/boom"


class TestUncaughtErrors:

    @pytest.mark.asyncio
    async def test_uncaught_error_entry_and_generic_body(self, app, client, store):
        @app.get("/explode")
        async def explode():
            raise ValueError("secret internals")

        response = await client.get("/explode")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal server error"
        assert "secret internals" not in response.text

        (uncaught,) = await audit_entries(store, "UNCAUGHT_ERROR")
        extra = uncaught["message"]["extra"]
        assert uncaught["level"] == "error"
        assert extra["type"] == "ValueError"
        assert extra["message"] == "secret internals"
        assert 0 < len(extra["stack"]) <= 5
        assert uncaught["request_id"] == body["request_id"]

        (http,) = await audit_entries(store, "HTTP")
        assert http["message"]["extra"]["status"] == 500


class TestFailingAuditStorage:
    """A broken audit_logs table must not change any response."""

    @pytest.mark.asyncio
    async def test_responses_unchanged(self, settings, store):
        store.audit_logs.create = AsyncMock(side_effect=RuntimeError("audit table locked"))
        app = create_app(settings, store)
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            registered = await client.post("/api/auth/register", json=ANA)
            duplicate = await client.post("/api/auth/register", json=ANA)
            login = await client.post(
                "/api/auth/login", json={"email": ANA["email"], "password": "wrong-one"}
            )
        await store.audit_sink.drain()

        assert registered.status_code == 201
        assert registered.json()["user"]["email"] == ANA["email"]
        assert duplicate.status_code == 409
        assert login.status_code == 401
        assert store.audit_logs.create.await_count > 0
        assert await store.users.count() == 1
