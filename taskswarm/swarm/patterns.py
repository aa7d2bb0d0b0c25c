"""
Orchestration patterns for the swarm.

Prebuilt compositions of enqueue + wait on top of the orchestrator:
- Parallel: fan tasks out over as many agents as allowed
- Sequential: chain tasks so each depends on the previous one
- Pipeline: feed each stage's output into the next stage's spec

Patterns own no state. They never raise for task failures; those are
reported in the returned OrchestrationResult.
"""

import time
from dataclasses import replace
from typing import Callable, Iterable, TYPE_CHECKING

from loguru import logger

from taskswarm.swarm.errors import ConfigurationError
from taskswarm.swarm.models import OrchestrationResult, TaskResult, TaskSpec

if TYPE_CHECKING:
    from taskswarm.swarm.orchestrator import SwarmOrchestrator


StageTransform = Callable[[str, TaskSpec], TaskSpec]


def carry_output(previous_output: str, spec: TaskSpec) -> TaskSpec:
    """Default pipeline transform: pass the previous output as context."""
    if spec.context:
        context = f"{spec.context}\n\nOutput from previous stage:\n{previous_output}"
    else:
        context = previous_output
    return replace(spec, context=context)


class OrchestrationPatterns:
    """Parallel, sequential and pipeline runs over a SwarmOrchestrator."""

    def __init__(self, swarm: "SwarmOrchestrator"):
        self.swarm = swarm

    async def run_parallel(self, specs: Iterable[TaskSpec | str]) -> OrchestrationResult:
        """
        Run independent tasks concurrently.

        Provisions min(len(specs), max_agents) agents, reusing idle ones
        first, then waits for every task to reach a terminal result.
        """
        specs = self._validate(specs, "run_parallel")
        start_time = time.time()

        needed = min(len(specs), self.swarm.config.max_agents)
        agents_used = self._provision(needed, "Worker")
        logger.info(f"Parallel run: {len(specs)} tasks on {agents_used} agents")

        tasks = self.swarm.enqueue_tasks(specs)
        await self.swarm.start_swarm()
        results = await self.swarm.wait_for_completion([t.id for t in tasks])

        return self._summarize(
            results,
            total=len(specs),
            start_time=start_time,
            agents_used=agents_used,
            label="tasks",
        )

    async def run_sequential(self, specs: Iterable[TaskSpec | str]) -> OrchestrationResult:
        """
        Run tasks one after another.

        Each task depends on the previous one, which forces serial order
        regardless of how many agents are idle. When a link fails for good,
        the links after it can never become ready and are withdrawn.
        """
        specs = self._validate(specs, "run_sequential")
        start_time = time.time()

        if len(self.swarm.pool) < self.swarm.config.max_agents:
            self.swarm.create_agent("Sequential Worker")
        elif not self.swarm.get_available_agents():
            logger.warning("Sequential run: pool is full and no agent is idle")

        tasks = []
        previous_id = None
        for spec in specs:
            dependencies = set(spec.dependencies)
            if previous_id:
                dependencies.add(previous_id)
            task = self.swarm.enqueue_task(replace(spec, dependencies=dependencies))
            tasks.append(task)
            previous_id = task.id

        logger.info(f"Sequential run: {len(tasks)} chained tasks")
        await self.swarm.start_swarm()

        results: dict[str, TaskResult] = {}
        for index, task in enumerate(tasks):
            done = await self.swarm.wait_for_completion([task.id])
            results[task.id] = done[task.id]

            if not done[task.id].success:
                skipped = tasks[index + 1:]
                for blocked in skipped:
                    self.swarm.withdraw_task(blocked.id)
                if skipped:
                    logger.info(
                        f"Sequential run stopped at {task.id}; withdrew {len(skipped)} blocked task(s)"
                    )
                break

        return self._summarize(
            results,
            total=len(specs),
            start_time=start_time,
            agents_used=len({r.agent_id for r in results.values()}),
            label="tasks sequentially",
        )

    async def run_pipeline(
        self,
        specs: Iterable[TaskSpec | str],
        transform: StageTransform = carry_output,
    ) -> OrchestrationResult:
        """
        Run stages in order, deriving each stage from the previous output.

        Args:
            specs: Raw stage specs.
            transform: Called as transform(previous_output, raw_spec) for
                every stage after the first.

        Returns:
            Result map holding the stages that ran. Execution stops at the
            first failing stage.
        """
        specs = self._validate(specs, "run_pipeline")
        if not callable(transform):
            raise ConfigurationError("run_pipeline requires a callable transform")

        start_time = time.time()

        if not self.swarm.get_available_agents() and len(self.swarm.pool) < self.swarm.config.max_agents:
            self.swarm.create_agent("Pipeline Worker")

        logger.info(f"Pipeline run: {len(specs)} stages")
        await self.swarm.start_swarm()

        results: dict[str, TaskResult] = {}
        previous_output = ""
        for index, raw_spec in enumerate(specs):
            spec = raw_spec if index == 0 else transform(previous_output, raw_spec)
            if not isinstance(spec, TaskSpec):
                raise ConfigurationError(
                    f"Pipeline transform returned {type(spec).__name__}, expected TaskSpec"
                )

            task = self.swarm.enqueue_task(spec)
            done = await self.swarm.wait_for_completion([task.id])
            result = done[task.id]
            results[task.id] = result
            previous_output = result.output

            if not result.success:
                logger.info(f"Pipeline stopped at stage {index + 1}/{len(specs)}: {result.error}")
                break

        return self._summarize(
            results,
            total=len(specs),
            start_time=start_time,
            agents_used=len({r.agent_id for r in results.values()}),
            label="stages",
            prefix="Pipeline completed",
        )

    def _validate(self, specs: Iterable[TaskSpec | str], operation: str) -> list[TaskSpec]:
        if specs is None or isinstance(specs, (str, TaskSpec)):
            raise ConfigurationError(f"{operation} expects a list of tasks")

        validated = []
        for spec in specs:
            if isinstance(spec, str):
                spec = TaskSpec(prompt=spec)
            if not isinstance(spec, TaskSpec):
                raise ConfigurationError(
                    f"{operation} got {type(spec).__name__}, expected TaskSpec or str"
                )
            validated.append(spec)

        if not validated:
            raise ConfigurationError(f"{operation} requires at least one task")
        return validated

    def _provision(self, needed: int, name_prefix: str) -> int:
        """Reuse idle agents, then create more while the pool has room."""
        available = min(len(self.swarm.get_available_agents()), needed)

        while available < needed and len(self.swarm.pool) < self.swarm.config.max_agents:
            self.swarm.create_agent(f"{name_prefix} {len(self.swarm.pool) + 1}")
            available += 1

        if available == 0:
            logger.warning("No idle agents available; tasks will wait for busy agents")
        return available

    def _summarize(
        self,
        results: dict[str, TaskResult],
        total: int,
        start_time: float,
        agents_used: int,
        label: str,
        prefix: str = "Completed",
    ) -> OrchestrationResult:
        duration = time.time() - start_time
        succeeded = sum(1 for r in results.values() if r.success)
        summary = f"{prefix} {succeeded}/{total} {label} in {duration:.2f}s"
        logger.info(summary)

        return OrchestrationResult(
            success=succeeded == total,
            results=results,
            duration=duration,
            agents_used=agents_used,
            summary=summary,
        )
