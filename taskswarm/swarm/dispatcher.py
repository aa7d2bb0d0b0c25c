"""
Dispatcher for the swarm.

The scheduling loop: every trigger (swarm start, task enqueued, agent
resumed, attempt finished) runs a dispatch tick that pairs idle agents
with ready tasks and launches each attempt as its own asyncio task.
All bookkeeping happens synchronously on the event loop; the executor
call is the only suspension point.
"""

import asyncio
import time
from typing import Callable, TYPE_CHECKING

from loguru import logger

from taskswarm.swarm.models import Agent, AgentStatus, ExecutionOutput, Task
from taskswarm.swarm.pool import AgentPool
from taskswarm.swarm.queue import TaskQueue
from taskswarm.swarm.retry import EXECUTOR_FAILURE, TIMEOUT, RetryPolicy

if TYPE_CHECKING:
    from taskswarm.config.schema import SwarmConfig
    from taskswarm.executors.base import Executor


class Dispatcher:
    """
    Matches ready tasks to idle agents.

    Only one attempt is ever in flight per agent. stop() is cooperative:
    running agents are paused and no new work is assigned, but in-flight
    executor calls finish and their outcome is still recorded.
    """

    def __init__(
        self,
        pool: AgentPool,
        queue: TaskQueue,
        retry: RetryPolicy,
        executor: "Executor",
        settings: Callable[[], "SwarmConfig"],
    ):
        self.pool = pool
        self.queue = queue
        self.retry = retry
        self.executor = executor
        self._settings = settings

        self._running = False
        self._disposed = False
        self._dispatching = False
        self._redispatch = False
        self._in_flight: dict[str, Task] = {}  # agent id -> task
        self._attempts: set[asyncio.Task] = set()
        self._stopped_agents: set[str] = set()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> dict[str, Task]:
        return dict(self._in_flight)

    def start(self) -> None:
        self._running = True
        for agent_id in self._stopped_agents:
            self.pool.resume(agent_id)
        self._stopped_agents.clear()
        logger.info(f"Swarm started with {len(self.pool)} agents, {len(self.queue)} queued tasks")
        self.dispatch()

    def stop(self) -> None:
        self._running = False
        for agent in self.pool.list_active():
            if self.pool.pause(agent.id):
                self._stopped_agents.add(agent.id)
        logger.info(f"Swarm stopped ({len(self._in_flight)} attempts still in flight)")

    def dispose(self) -> None:
        self.stop()
        self._disposed = True
        self._stopped_agents.clear()

    def dispatch(self) -> int:
        """
        Run one dispatch tick.

        Returns:
            Number of attempts launched.
        """
        if not self._running or self._disposed:
            return 0

        # callbacks fired during a tick may trigger another; fold it into this one
        if self._dispatching:
            self._redispatch = True
            return 0

        self._dispatching = True
        launched = 0
        try:
            while True:
                self._redispatch = False
                for agent in self.available_agents():
                    if not self._running:
                        break
                    task = self.queue.select_ready()
                    if task is None:
                        break
                    self._launch(agent, task)
                    launched += 1
                if not self._redispatch:
                    break
        finally:
            self._dispatching = False

        return launched

    async def drain(self) -> None:
        """Wait for every in-flight attempt to finish."""
        while self._attempts:
            await asyncio.gather(*list(self._attempts), return_exceptions=True)

    def available_agents(self) -> list[Agent]:
        """Idle agents with no attempt still in flight."""
        return [a for a in self.pool.list_idle() if a.id not in self._in_flight]

    def _launch(self, agent: Agent, task: Task) -> None:
        self._in_flight[agent.id] = task
        self.pool.assign(agent, task)
        logger.debug(f"Assigned {task.id} (attempt {task.attempt + 1}) to {agent.id}")

        attempt = asyncio.create_task(self._run_attempt(agent, task))
        self._attempts.add(attempt)
        attempt.add_done_callback(self._on_attempt_done)

    def _on_attempt_done(self, attempt: asyncio.Task) -> None:
        self._attempts.discard(attempt)
        if not attempt.cancelled() and attempt.exception() is not None:
            logger.error(f"Swarm attempt crashed: {attempt.exception()!r}")

    async def _run_attempt(self, agent: Agent, task: Task) -> None:
        timeout = task.timeout if task.timeout is not None else self._settings().task_timeout
        start_time = time.time()

        text = ""
        tokens = 0
        error = ""
        error_kind = None

        try:
            try:
                if timeout is not None:
                    raw = await asyncio.wait_for(
                        self.executor.execute(agent, task),
                        timeout=timeout,
                    )
                else:
                    raw = await self.executor.execute(agent, task)

                if isinstance(raw, ExecutionOutput):
                    text, tokens = raw.text, raw.tokens
                else:
                    text = "" if raw is None else str(raw)

            except asyncio.TimeoutError as e:
                if timeout is None:
                    error = str(e) or "Executor raised TimeoutError"
                    error_kind = EXECUTOR_FAILURE
                    logger.warning(f"Agent {agent.id} failed on {task.id}: {error[:100]}")
                else:
                    error = f"Task timed out after {timeout}s"
                    error_kind = TIMEOUT
                    logger.warning(f"Agent {agent.id} timed out on {task.id}")

            except asyncio.CancelledError:
                if _cancel_requested():
                    self._abandon(agent, task)
                    raise
                # raised by the executor itself, not a cancellation of this attempt
                error = "Executor was cancelled"
                error_kind = EXECUTOR_FAILURE
                logger.warning(f"Agent {agent.id} failed on {task.id}: {error}")

            except Exception as e:
                error = str(e) or e.__class__.__name__
                error_kind = EXECUTOR_FAILURE
                logger.warning(f"Agent {agent.id} failed on {task.id}: {error[:100]}")

        finally:
            self._in_flight.pop(agent.id, None)

        if self._disposed:
            return

        duration = time.time() - start_time

        try:
            if error_kind is None:
                self.retry.on_success(agent, task, text, duration, tokens)
            else:
                self.retry.on_failure(agent, task, error, error_kind, duration)
        finally:
            threshold = self._settings().agent_error_threshold
            if (
                error_kind is not None
                and threshold
                and agent.consecutive_failures >= threshold
                and agent.status == AgentStatus.RUNNING
            ):
                self.pool.escalate(agent, f"{agent.consecutive_failures} consecutive failures")
            else:
                self.pool.release(agent)

            self.dispatch()

    def _abandon(self, agent: Agent, task: Task) -> None:
        """Put an interrupted attempt back so the task is not lost."""
        self._in_flight.pop(agent.id, None)
        if self._disposed:
            return
        self.queue.enqueue(task)
        self.pool.release(agent)
        logger.warning(f"Attempt of {task.id} on {agent.id} was cancelled; task requeued")


def _cancel_requested() -> bool:
    """True if the current asyncio task has a pending cancel() request."""
    current = asyncio.current_task()
    return current is not None and current.cancelling() > 0
