"""
Swarm orchestrator.

Public facade over the engine:
- Agent pool management
- Task submission and queue introspection
- Swarm start/stop
- Orchestration patterns
- Observer subscriptions
"""

from typing import Any, Callable, Iterable, TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError

from taskswarm.config.schema import SwarmConfig
from taskswarm.swarm.dispatcher import Dispatcher
from taskswarm.swarm.errors import ConfigurationError, SwarmDisposedError
from taskswarm.swarm.events import AgentCallback, ResultCallback, SwarmEvents, SwarmObserver
from taskswarm.swarm.models import Agent, OrchestrationResult, Task, TaskResult, TaskSpec
from taskswarm.swarm.patterns import OrchestrationPatterns, StageTransform, carry_output
from taskswarm.swarm.pool import AgentPool
from taskswarm.swarm.queue import TaskQueue
from taskswarm.swarm.results import ResultStore
from taskswarm.swarm.retry import RetryPolicy

if TYPE_CHECKING:
    from taskswarm.executors.base import Executor


class SwarmOrchestrator:
    """
    Orchestrates multi-agent task execution.

    Flow:
    1. Callers create agents and submit tasks
    2. The queue orders tasks by priority and arrival
    3. The dispatcher pairs ready tasks with idle agents
    4. The executor runs each attempt; failures are retried
    5. Terminal results are stored and observers notified

    Must be driven from a running asyncio event loop.
    """

    def __init__(
        self,
        executor: "Executor",
        config: SwarmConfig | None = None,
    ):
        self._config = config or SwarmConfig()
        self._disposed = False

        self.events = SwarmEvents()
        self.results = ResultStore()
        self.queue = TaskQueue(self.results)
        self.pool = AgentPool(
            events=self.events,
            max_agents=self._config.max_agents,
            default_model=self._config.default_model,
        )
        self.retry = RetryPolicy(
            queue=self.queue,
            results=self.results,
            events=self.events,
            retry_limit=lambda: self._config.retry_limit,
        )
        self.dispatcher = Dispatcher(
            pool=self.pool,
            queue=self.queue,
            retry=self.retry,
            executor=executor,
            settings=lambda: self._config,
        )
        self.patterns = OrchestrationPatterns(self)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def config(self) -> SwarmConfig:
        return self._config

    @property
    def executor(self) -> "Executor":
        return self.dispatcher.executor

    def update_config(self, **changes: Any) -> SwarmConfig:
        """
        Replace configuration values.

        Raises:
            ConfigurationError: For unknown fields or invalid values.
        """
        unknown = set(changes) - set(SwarmConfig.model_fields)
        if unknown:
            raise ConfigurationError(f"Unknown swarm config field(s): {', '.join(sorted(unknown))}")

        try:
            config = SwarmConfig.model_validate({**self._config.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self._config = config
        self.pool.max_agents = config.max_agents
        self.pool.default_model = config.default_model
        logger.debug(f"Swarm config updated: {changes}")
        return config

    # -------------------------------------------------------------------------
    # Agents
    # -------------------------------------------------------------------------

    def create_agent(
        self,
        name: str,
        system_prompt: str | None = None,
        model: str | None = None,
    ) -> Agent:
        self._check_open()
        agent = self.pool.create(name, system_prompt=system_prompt, model=model)
        if self.dispatcher.running:
            self.dispatcher.dispatch()
        return agent

    def remove_agent(self, agent_id: str) -> bool:
        return self.pool.remove(agent_id)

    def get_agent(self, agent_id: str) -> Agent | None:
        return self.pool.get(agent_id)

    def get_agents(self) -> list[Agent]:
        return self.pool.list_all()

    def get_idle_agents(self) -> list[Agent]:
        return self.pool.list_idle()

    def get_active_agents(self) -> list[Agent]:
        return self.pool.list_active()

    def get_available_agents(self) -> list[Agent]:
        """Idle agents that can take a task right now."""
        return self.dispatcher.available_agents()

    def pause_agent(self, agent_id: str) -> bool:
        return self.pool.pause(agent_id)

    def resume_agent(self, agent_id: str) -> bool:
        resumed = self.pool.resume(agent_id)
        if resumed:
            self.dispatcher.dispatch()
        return resumed

    def reset_agent(self, agent_id: str) -> bool:
        """Bring an agent in the error state back to idle."""
        reset = self.pool.reset(agent_id)
        if reset:
            self.dispatcher.dispatch()
        return reset

    def retire_agent(self, agent_id: str) -> bool:
        """Mark an idle agent completed so it receives no more work."""
        return self.pool.retire(agent_id)

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    def enqueue_task(self, spec: TaskSpec | str) -> Task:
        """Give a spec a fresh id, queue it and trigger dispatch."""
        self._check_open()
        if isinstance(spec, str):
            spec = TaskSpec(prompt=spec)
        if not isinstance(spec, TaskSpec):
            raise ConfigurationError(f"Expected TaskSpec or str, got {type(spec).__name__}")

        task = Task.from_spec(spec)
        self.queue.enqueue(task)
        self.dispatcher.dispatch()
        return task

    def enqueue_tasks(self, specs: Iterable[TaskSpec | str]) -> list[Task]:
        return [self.enqueue_task(spec) for spec in specs]

    def withdraw_task(self, task_id: str) -> bool:
        """Remove a task from the queue if it has not been dispatched."""
        return self.queue.remove(task_id)

    def clear_task_queue(self) -> None:
        self.queue.clear()

    def get_queue_snapshot(self) -> list[Task]:
        return self.queue.peek_all()

    def get_results(self) -> dict[str, TaskResult]:
        return self.results.snapshot()

    def get_result(self, task_id: str) -> TaskResult | None:
        return self.results.get(task_id)

    async def wait_for_completion(
        self,
        task_ids: Iterable[str],
        timeout: float | None = None,
    ) -> dict[str, TaskResult]:
        return await self.results.wait_for(task_ids, timeout=timeout)

    # -------------------------------------------------------------------------
    # Swarm lifecycle
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self.dispatcher.running

    async def start_swarm(self) -> None:
        self._check_open()
        self.dispatcher.start()

    def stop_swarm(self) -> None:
        self.dispatcher.stop()

    def get_status_summary(self) -> dict[str, Any]:
        """Get swarm status."""
        return {
            "running": self.dispatcher.running,
            "agent_count": len(self.pool),
            "active_agent_count": len(self.pool.list_active()),
            "pending_task_count": len(self.queue),
            "succeeded_count": self.results.succeeded_count(),
            "failed_count": self.results.failed_count(),
        }

    def dispose(self) -> None:
        """Stop the swarm and release all registries and subscriptions."""
        if self._disposed:
            return
        self.dispatcher.dispose()
        self.results.close()
        self.queue.clear()
        self.pool.clear()
        self.events.clear()
        self._disposed = True
        logger.info("Swarm disposed")

    def _check_open(self) -> None:
        if self._disposed:
            raise SwarmDisposedError("Orchestrator has been disposed")

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def on_agent_changed(self, callback: AgentCallback) -> Callable[[], None]:
        return self.events.on_agent_changed(callback)

    def on_task_completed(self, callback: ResultCallback) -> Callable[[], None]:
        return self.events.on_task_completed(callback)

    def subscribe(self, observer: SwarmObserver) -> Callable[[], None]:
        return self.events.subscribe(observer)

    # -------------------------------------------------------------------------
    # Patterns
    # -------------------------------------------------------------------------

    async def run_parallel(self, specs: Iterable[TaskSpec | str]) -> OrchestrationResult:
        return await self.patterns.run_parallel(specs)

    async def run_sequential(self, specs: Iterable[TaskSpec | str]) -> OrchestrationResult:
        return await self.patterns.run_sequential(specs)

    async def run_pipeline(
        self,
        specs: Iterable[TaskSpec | str],
        transform: StageTransform = carry_output,
    ) -> OrchestrationResult:
        return await self.patterns.run_pipeline(specs, transform)

    async def run(self, specs: Iterable[TaskSpec | str]) -> OrchestrationResult:
        """Run tasks with the pattern selected by config.parallelism_hint."""
        if specs is None or isinstance(specs, (str, TaskSpec)):
            raise ConfigurationError("run expects a list of tasks")

        specs = list(specs)
        hint = self._config.parallelism_hint

        if hint == "adaptive":
            hint = "parallel" if len(specs) > 1 and self._config.max_agents > 1 else "sequential"

        logger.debug(f"Parallelism hint resolved to {hint}")
        if hint == "parallel":
            return await self.run_parallel(specs)
        return await self.run_sequential(specs)
