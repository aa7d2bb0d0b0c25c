"""
Append-only store of terminal task results.

The store is the dependency-gating oracle: a task is ready only when each
of its dependencies has a successful entry here. Waiters are asyncio
futures resolved inside record(), so nothing polls.
"""

import asyncio
from typing import Iterable

from loguru import logger

from taskswarm.swarm.errors import DuplicateResultError, SwarmDisposedError
from taskswarm.swarm.models import TaskResult


class _Waiter:
    __slots__ = ("remaining", "future")

    def __init__(self, remaining: set[str], future: asyncio.Future):
        self.remaining = remaining
        self.future = future


class ResultStore:
    """Map of task id to its single terminal TaskResult."""

    def __init__(self):
        self._results: dict[str, TaskResult] = {}
        self._waiters: list[_Waiter] = []
        self._closed = False

    def record(self, result: TaskResult) -> None:
        """Write a terminal result and wake any waiter it completes."""
        if result.task_id in self._results:
            raise DuplicateResultError(f"Result for {result.task_id} already recorded")

        self._results[result.task_id] = result
        logger.debug(
            f"Recorded {'success' if result.success else 'failure'} for {result.task_id}"
        )

        for waiter in list(self._waiters):
            waiter.remaining.discard(result.task_id)
            if not waiter.remaining:
                self._resolve(waiter)

    def get(self, task_id: str) -> TaskResult | None:
        return self._results.get(task_id)

    def has(self, task_id: str) -> bool:
        return task_id in self._results

    def is_satisfied(self, task_id: str) -> bool:
        """True if the task has a successful terminal result."""
        result = self._results.get(task_id)
        return result is not None and result.success

    def snapshot(self) -> dict[str, TaskResult]:
        return dict(self._results)

    def succeeded_count(self) -> int:
        return sum(1 for r in self._results.values() if r.success)

    def failed_count(self) -> int:
        return sum(1 for r in self._results.values() if not r.success)

    def __len__(self) -> int:
        return len(self._results)

    async def wait_for(
        self,
        task_ids: Iterable[str],
        timeout: float | None = None,
    ) -> dict[str, TaskResult]:
        """
        Wait until every given task id has a terminal result.

        Args:
            task_ids: Ids to wait for.
            timeout: Optional limit in seconds; asyncio.TimeoutError on expiry.

        Returns:
            The terminal results for the requested ids.
        """
        if self._closed:
            raise SwarmDisposedError("Result store is closed")

        ids = list(task_ids)
        remaining = {task_id for task_id in ids if task_id not in self._results}

        if remaining:
            future = asyncio.get_running_loop().create_future()
            waiter = _Waiter(remaining, future)
            self._waiters.append(waiter)
            try:
                await asyncio.wait_for(future, timeout)
            finally:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)

        if self._closed:
            raise SwarmDisposedError("Result store is closed")
        return {task_id: self._results[task_id] for task_id in ids}

    def close(self) -> None:
        """Fail outstanding waiters and drop all results."""
        self._closed = True
        for waiter in self._waiters:
            if not waiter.future.done():
                waiter.future.set_exception(SwarmDisposedError("Orchestrator disposed"))
        self._waiters.clear()
        self._results.clear()

    def _resolve(self, waiter: _Waiter) -> None:
        if waiter in self._waiters:
            self._waiters.remove(waiter)
        if not waiter.future.done():
            waiter.future.set_result(None)
