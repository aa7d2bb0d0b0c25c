"""
Observer channels for the swarm engine.

Two notification channels:
- agent changed: an agent's status or metrics changed
- task completed: a terminal TaskResult was written
"""

import asyncio
import inspect
from typing import Any, Callable, Protocol

from loguru import logger

from taskswarm.swarm.models import Agent, TaskResult


AgentCallback = Callable[[Agent], Any]
ResultCallback = Callable[[TaskResult], Any]


class SwarmObserver(Protocol):
    """Object-style subscriber for both channels."""

    def on_agent_changed(self, agent: Agent) -> Any: ...

    def on_task_completed(self, result: TaskResult) -> Any: ...


class SwarmEvents:
    """
    Subscriber registry for agent and task notifications.

    Callbacks run synchronously on the scheduler. A callback that returns
    an awaitable has it scheduled on the running loop. Exceptions raised
    by callbacks are logged and never reach the dispatcher.
    """

    def __init__(self):
        self._agent_callbacks: list[AgentCallback] = []
        self._result_callbacks: list[ResultCallback] = []
        self._background: set[asyncio.Future] = set()

    def on_agent_changed(self, callback: AgentCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._agent_callbacks.append(callback)
        return lambda: self._discard(self._agent_callbacks, callback)

    def on_task_completed(self, callback: ResultCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._result_callbacks.append(callback)
        return lambda: self._discard(self._result_callbacks, callback)

    def subscribe(self, observer: SwarmObserver) -> Callable[[], None]:
        """Register both methods of an observer object."""
        off_agent = self.on_agent_changed(observer.on_agent_changed)
        off_result = self.on_task_completed(observer.on_task_completed)

        def unsubscribe() -> None:
            off_agent()
            off_result()

        return unsubscribe

    def emit_agent_changed(self, agent: Agent) -> None:
        for callback in list(self._agent_callbacks):
            self._invoke(callback, agent)

    def emit_task_completed(self, result: TaskResult) -> None:
        for callback in list(self._result_callbacks):
            self._invoke(callback, result)

    def clear(self) -> None:
        self._agent_callbacks.clear()
        self._result_callbacks.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._agent_callbacks) + len(self._result_callbacks)

    @staticmethod
    def _discard(callbacks: list, callback: Callable) -> None:
        if callback in callbacks:
            callbacks.remove(callback)

    def _invoke(self, callback: Callable, payload: Any) -> None:
        try:
            outcome = callback(payload)
        except Exception as e:
            logger.error(f"Swarm observer {callback!r} failed: {e}")
            return

        if inspect.isawaitable(outcome):
            future = asyncio.ensure_future(outcome)
            self._background.add(future)
            future.add_done_callback(self._on_background_done)

    def _on_background_done(self, future: asyncio.Future) -> None:
        self._background.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Swarm observer coroutine failed: {future.exception()}")
