"""Local deterministic executor for demos and tests."""

import asyncio

from taskswarm.executors.base import Executor
from taskswarm.swarm.models import Agent, Task


class EchoExecutor(Executor):
    """Completes every task with a short echo of its prompt."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def execute(self, agent: Agent, task: Task) -> str:
        self.calls.append((agent.id, task.id))
        if self.delay:
            await asyncio.sleep(self.delay)

        prompt = task.prompt if len(task.prompt) <= 50 else f"{task.prompt[:50]}..."
        return f"[{agent.name}] Completed task: {prompt}"
