"""
Pytest configuration and shared fixtures for taskswarm tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from taskswarm.config.schema import SwarmConfig
from taskswarm.executors.base import Executor
from taskswarm.swarm import SwarmOrchestrator
from taskswarm.swarm.models import ExecutionOutput


class ScriptedExecutor(Executor):
    """
    Test executor driven by prompt.

    - script: prompt -> list of outcomes consumed one per call; an exception
      instance is raised, a string or ExecutionOutput is returned. Once the
      list is used up the call succeeds.
    - fail_prompts: prompts that always raise.
    - gate: optional asyncio.Event every call waits on.
    """

    def __init__(
        self,
        script: dict | None = None,
        fail_prompts: set[str] | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ):
        self.script = {prompt: list(outcomes) for prompt, outcomes in (script or {}).items()}
        self.fail_prompts = fail_prompts or set()
        self.delay = delay
        self.gate = gate

        self.calls: list[tuple[str, str, int]] = []  # (agent_id, task_id, attempt)
        self.prompts: list[str] = []
        self.contexts: list[str | None] = []
        self.active = 0
        self.max_active = 0
        self.active_agents: set[str] = set()

    async def execute(self, agent, task):
        self.calls.append((agent.id, task.id, task.attempt))
        self.prompts.append(task.prompt)
        self.contexts.append(task.context)
        assert agent.id not in self.active_agents, "agent received two tasks at once"
        self.active_agents.add(agent.id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)

            if task.prompt in self.fail_prompts:
                raise RuntimeError(f"boom: {task.prompt}")

            outcomes = self.script.get(task.prompt)
            outcome = outcomes.pop(0) if outcomes else None
            if isinstance(outcome, BaseException):
                raise outcome
            if isinstance(outcome, (str, ExecutionOutput)):
                return outcome
            return f"done: {task.prompt}"
        finally:
            self.active -= 1
            self.active_agents.discard(agent.id)

    def attempts_for(self, task_id: str) -> int:
        return sum(1 for _, called_id, _ in self.calls if called_id == task_id)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def executor():
    """A scripted executor that succeeds by default."""
    return ScriptedExecutor()


@pytest.fixture
def make_swarm():
    """Factory for orchestrators, disposed after the test."""
    created: list[SwarmOrchestrator] = []

    def factory(executor=None, **config) -> SwarmOrchestrator:
        swarm = SwarmOrchestrator(executor or ScriptedExecutor(), SwarmConfig(**config))
        created.append(swarm)
        return swarm

    yield factory

    for swarm in created:
        swarm.dispose()


@pytest.fixture
def config_dir(tmp_path):
    """Create a temporary config directory."""
    config = tmp_path / "config"
    config.mkdir()
    return config
