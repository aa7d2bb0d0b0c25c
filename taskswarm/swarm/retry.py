"""
Retry policy for dispatched tasks.

A failed attempt is re-enqueued under the same task id until the retry
limit is reached. Nothing is written to the result store until the task
succeeds or its retries are exhausted, so dependents never see a
provisional failure.
"""

from dataclasses import replace
from typing import Callable

from loguru import logger

from taskswarm.swarm.events import SwarmEvents
from taskswarm.swarm.models import Agent, Task, TaskResult
from taskswarm.swarm.queue import TaskQueue
from taskswarm.swarm.results import ResultStore


EXECUTOR_FAILURE = "executor_failure"
TIMEOUT = "timeout"


class RetryPolicy:
    """Settles each finished attempt: terminal result or re-enqueue."""

    def __init__(
        self,
        queue: TaskQueue,
        results: ResultStore,
        events: SwarmEvents,
        retry_limit: Callable[[], int],
    ):
        self.queue = queue
        self.results = results
        self.events = events
        self._retry_limit = retry_limit

    @property
    def retry_limit(self) -> int:
        return self._retry_limit()

    def should_retry(self, task: Task) -> bool:
        return task.attempt < self.retry_limit

    def on_success(
        self,
        agent: Agent,
        task: Task,
        output: str,
        duration: float,
        tokens: int = 0,
    ) -> TaskResult:
        agent.metrics.record_attempt(True, duration, tokens)
        agent.completed_task_ids.append(task.id)
        agent.output_log.append(output)
        agent.consecutive_failures = 0

        result = TaskResult(
            task_id=task.id,
            agent_id=agent.id,
            success=True,
            output=output,
            duration=duration,
            attempts=task.attempt + 1,
        )
        self._write(result)
        return result

    def on_failure(
        self,
        agent: Agent,
        task: Task,
        error: str,
        error_kind: str,
        duration: float,
    ) -> TaskResult | None:
        """
        Handle a failed attempt.

        Returns:
            The terminal result if retries are exhausted, None if the task
            was re-enqueued.
        """
        agent.metrics.record_attempt(False, duration)
        agent.failed_task_ids.append(task.id)
        agent.consecutive_failures += 1

        if self.should_retry(task):
            retry = replace(task, attempt=task.attempt + 1)
            logger.warning(
                f"Retrying task '{task.id}' (attempt {retry.attempt + 1}/{self.retry_limit + 1}): "
                f"{error[:100]}"
            )
            self.queue.enqueue(retry)
            return None

        logger.info(f"Task '{task.id}' failed after {task.attempt + 1} attempt(s): {error[:100]}")
        result = TaskResult(
            task_id=task.id,
            agent_id=agent.id,
            success=False,
            output="",
            duration=duration,
            error=error,
            error_kind=error_kind,
            attempts=task.attempt + 1,
        )
        self._write(result)
        return result

    def _write(self, result: TaskResult) -> None:
        self.results.record(result)
        self.events.emit_task_completed(result)
