"""Base class for task executors."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from taskswarm.swarm.models import Agent, ExecutionOutput, Task


class Executor(ABC):
    """
    Abstract base class for executors.

    An executor performs the actual work of a task on behalf of an agent,
    typically an LLM call. The swarm knows nothing about how output is
    produced; it only races the call against the task timeout and treats
    any exception as a failed attempt.
    """

    @abstractmethod
    async def execute(self, agent: Agent, task: Task) -> str | ExecutionOutput:
        """
        Run a task.

        Args:
            agent: The agent the task is assigned to.
            task: The task to run.

        Returns:
            The output text, or an ExecutionOutput carrying token usage.
        """
        pass


class CallableExecutor(Executor):
    """Adapts an async function `(agent, task) -> str` to the Executor interface."""

    def __init__(self, func: Callable[[Agent, Task], Awaitable[str | ExecutionOutput]]):
        self.func = func

    async def execute(self, agent: Agent, task: Task) -> str | ExecutionOutput:
        return await self.func(agent, task)
