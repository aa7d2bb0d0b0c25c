"""
Tests for the result store.

Tests:
- Write-once semantics
- Future-based waiting
- Closing
"""

import asyncio

import pytest

from taskswarm.swarm.errors import DuplicateResultError, SwarmDisposedError
from taskswarm.swarm.models import TaskResult
from taskswarm.swarm.results import ResultStore


def result(task_id: str, success: bool = True) -> TaskResult:
    return TaskResult(
        task_id=task_id,
        agent_id="agent_1",
        success=success,
        output="ok" if success else "",
        error=None if success else "boom",
    )


class TestRecording:
    """Tests for record and lookups."""

    def test_record_and_lookup(self):
        """Recorded results are retrievable and counted."""
        store = ResultStore()
        store.record(result("a"))
        store.record(result("b", success=False))

        assert store.get("a").success is True
        assert store.has("b")
        assert store.get("missing") is None
        assert store.succeeded_count() == 1
        assert store.failed_count() == 1
        assert len(store) == 2

    def test_is_satisfied_requires_success(self):
        """Only successful results satisfy a dependency."""
        store = ResultStore()
        store.record(result("ok"))
        store.record(result("bad", success=False))

        assert store.is_satisfied("ok") is True
        assert store.is_satisfied("bad") is False
        assert store.is_satisfied("missing") is False

    def test_second_write_is_rejected(self):
        """A task id gets exactly one terminal result."""
        store = ResultStore()
        store.record(result("a"))

        with pytest.raises(DuplicateResultError):
            store.record(result("a", success=False))

        assert store.get("a").success is True


class TestWaiting:
    """Tests for wait_for."""

    @pytest.mark.asyncio
    async def test_wait_resolves_when_last_id_recorded(self):
        """The waiter wakes only after every id has a result."""
        store = ResultStore()
        waiter = asyncio.create_task(store.wait_for(["a", "b"]))

        await asyncio.sleep(0)
        store.record(result("a"))
        await asyncio.sleep(0)
        assert not waiter.done()

        store.record(result("b"))
        results = await asyncio.wait_for(waiter, 1.0)

        assert set(results) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_wait_on_recorded_ids_returns_immediately(self):
        """Waiting for ids that already finished does not block."""
        store = ResultStore()
        store.record(result("a"))

        results = await asyncio.wait_for(store.wait_for(["a"]), 0.5)

        assert results["a"].success

    @pytest.mark.asyncio
    async def test_wait_timeout(self):
        """A timeout raises and leaves no waiter behind."""
        store = ResultStore()

        with pytest.raises(asyncio.TimeoutError):
            await store.wait_for(["never"], timeout=0.05)

        assert store._waiters == []

    @pytest.mark.asyncio
    async def test_close_fails_waiters(self):
        """Closing the store fails outstanding waiters."""
        store = ResultStore()
        waiter = asyncio.create_task(store.wait_for(["a"]))
        await asyncio.sleep(0)

        store.close()

        with pytest.raises(SwarmDisposedError):
            await waiter

    @pytest.mark.asyncio
    async def test_wait_after_close_raises(self):
        """A closed store refuses new waiters."""
        store = ResultStore()
        store.close()

        with pytest.raises(SwarmDisposedError):
            await store.wait_for(["a"])
