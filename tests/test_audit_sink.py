"""
Test Suite: Audit Sink
======================

Entries are persisted in the background, tagged with the request
context current when they were recorded, and never fail the caller.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from campeiro.core.context import (
    RequestContext,
    bind_request_context,
    reset_request_context,
    set_request_user,
)
from campeiro.data.memory import MemoryRepository
from campeiro.observability.audit import AuditSink


@pytest.fixture
def repository():
    return MemoryRepository("audit_logs")


@pytest.fixture
def sink(repository):
    return AuditSink(repository)


class TestEntryShape:

    def test_entry_without_request(self, sink):
        entry = sink.build_entry("warn", "LOGIN_FAILED", {"email": "a@b.c"})

        assert entry["level"] == "warn"
        assert entry["event"] == "LOGIN_FAILED"
        assert entry["message"]["event"] == "LOGIN_FAILED"
        assert entry["message"]["extra"] == {"email": "a@b.c"}
        assert entry["message"]["ctx"]["request_id"] is None
        assert entry["user_id"] is None
        assert entry["request_id"] is None

    def test_unknown_level_falls_back_to_info(self, sink):
        assert sink.build_entry("debug", "X")["level"] == "info"

    def test_extra_is_masked(self, sink):
        entry = sink.build_entry("info", "X", {"password": "p", "nested": {"token": "t"}})
        assert entry["message"]["extra"] == {"password": "***", "nested": {"token": "***"}}

    def test_entry_carries_explicit_context(self, sink):
        ctx = RequestContext(
            method="POST", path="/api/auth/login", client_ip="10.1.1.1",
            user_agent="pytest", user_id="user-1",
        )

        entry = sink.build_entry("info", "X", context=ctx)

        assert entry["request_id"] == ctx.request_id
        assert entry["user_id"] == "user-1"
        assert entry["ip_address"] == "10.1.1.1"
        assert entry["message"]["ctx"] == {
            "request_id": ctx.request_id,
            "method": "POST",
            "path": "/api/auth/login",
            "user_agent": "pytest",
        }


class TestRecording:

    @pytest.mark.asyncio
    async def test_record_persists_in_background(self, sink, repository):
        task = sink.record("info", "HTTP", {"status": 200})

        assert isinstance(task, asyncio.Task)
        await sink.drain()
        assert sink.pending == 0
        (entry,) = await repository.find_many()
        assert entry["event"] == "HTTP"

    @pytest.mark.asyncio
    async def test_identity_is_snapshotted_at_record_time(self, sink, repository):
        ctx = RequestContext(method="GET", path="/x")
        token = bind_request_context(ctx)
        try:
            set_request_user("user-1")
            sink.info("FIRST")
            set_request_user("user-2")
            sink.info("SECOND")
        finally:
            reset_request_context(token)
        await sink.drain()

        by_event = {e["event"]: e for e in await repository.find_many()}
        assert by_event["FIRST"]["user_id"] == "user-1"
        assert by_event["SECOND"]["user_id"] == "user-2"
        assert by_event["FIRST"]["request_id"] == ctx.request_id

    @pytest.mark.asyncio
    async def test_level_helpers(self, sink, repository):
        sink.info("A")
        sink.warn("B")
        sink.error("C")
        await sink.drain()

        levels = {e["event"]: e["level"] for e in await repository.find_many()}
        assert levels == {"A": "info", "B": "warn", "C": "error"}

    @pytest.mark.asyncio
    async def test_disabled_sink_drops_entries(self, repository):
        sink = AuditSink(repository, enabled=False)

        assert sink.record("info", "X") is None
        await sink.drain()
        assert await repository.count() == 0

    @pytest.mark.asyncio
    async def test_storage_failure_is_swallowed(self):
        failing = MagicMock()
        failing.create = AsyncMock(side_effect=RuntimeError("database unavailable"))
        sink = AuditSink(failing)

        sink.error("X")
        await sink.drain()

        failing.create.assert_awaited_once()
        assert sink.pending == 0

    @pytest.mark.asyncio
    async def test_slow_storage_does_not_block_caller(self):
        release = asyncio.Event()

        async def slow_create(entry):
            await release.wait()
            return entry

        slow = MagicMock()
        slow.create = slow_create
        sink = AuditSink(slow)

        sink.info("X")
        assert sink.pending == 1

        release.set()
        await sink.drain()
        assert sink.pending == 0

    def test_record_without_event_loop_is_dropped(self, sink):
        assert sink.record("info", "X") is None
