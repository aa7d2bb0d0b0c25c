"""
Tests for orchestration patterns.

Tests:
- Parallel fan-out accounting
- Sequential chaining
- Pipeline transforms and short-circuit
- Pattern selection from the parallelism hint
- Input validation
"""

import asyncio

import pytest

from conftest import ScriptedExecutor, wait_until
from taskswarm.swarm.errors import ConfigurationError
from taskswarm.swarm.models import TaskSpec
from taskswarm.swarm.patterns import carry_output


class BarrierExecutor(ScriptedExecutor):
    """Holds every call until `parties` calls are running at once."""

    def __init__(self, parties: int):
        super().__init__(gate=asyncio.Event())
        self.parties = parties

    async def execute(self, agent, task):
        if self.active + 1 >= self.parties:
            self.gate.set()
        return await super().execute(agent, task)


class TestParallel:
    """Tests for run_parallel."""

    @pytest.mark.asyncio
    async def test_fan_out_accounting(self, make_swarm):
        """3 tasks with max_agents=5 use exactly 3 agents, all at once."""
        executor = BarrierExecutor(parties=3)
        swarm = make_swarm(executor, max_agents=5)

        result = await asyncio.wait_for(swarm.run_parallel(["t1", "t2", "t3"]), 2)

        assert result.success is True
        assert result.agents_used == 3
        assert len(swarm.get_agents()) == 3
        assert executor.max_active == 3
        assert len(result.results) == 3
        assert result.summary.startswith("Completed 3/3 tasks")

    @pytest.mark.asyncio
    async def test_reuses_idle_agents_first(self, make_swarm, executor):
        """Existing idle agents count toward the agents needed."""
        swarm = make_swarm(executor, max_agents=5)
        swarm.create_agent("existing 1")
        swarm.create_agent("existing 2")

        result = await swarm.run_parallel(["a", "b", "c"])

        assert result.success
        assert len(swarm.get_agents()) == 3

    @pytest.mark.asyncio
    async def test_busy_resumed_agent_is_not_counted_as_available(self, make_swarm):
        """An agent resumed mid-attempt does not stand in for a new agent."""
        gate = asyncio.Event()
        executor = ScriptedExecutor(gate=gate)
        swarm = make_swarm(executor, max_agents=5)
        busy = swarm.create_agent("busy")
        swarm.enqueue_task("hold")
        await swarm.start_swarm()
        await wait_until(lambda: executor.active == 1)
        swarm.pause_agent(busy.id)
        swarm.resume_agent(busy.id)

        assert busy in swarm.get_idle_agents()
        assert swarm.get_available_agents() == []

        run = asyncio.create_task(swarm.run_parallel(["a", "b"]))
        await wait_until(lambda: executor.active == 3)
        gate.set()
        result = await asyncio.wait_for(run, 2)

        assert result.success
        assert result.agents_used == 2
        assert len(swarm.get_agents()) == 3

    @pytest.mark.asyncio
    async def test_agent_count_capped_by_max_agents(self, make_swarm, executor):
        """More tasks than max_agents still complete on the capped pool."""
        swarm = make_swarm(executor, max_agents=2)

        result = await swarm.run_parallel(["a", "b", "c", "d"])

        assert result.success
        assert result.agents_used == 2
        assert len(swarm.get_agents()) == 2
        assert executor.max_active <= 2

    @pytest.mark.asyncio
    async def test_failures_are_reported_not_raised(self, make_swarm):
        """A failing task makes the run unsuccessful without raising."""
        executor = ScriptedExecutor(fail_prompts={"bad"})
        swarm = make_swarm(executor, retry_limit=0)

        result = await swarm.run_parallel(["good", "bad"])

        assert result.success is False
        assert len(result.results) == 2
        assert [r.error_kind for r in result.failed] == ["executor_failure"]
        assert result.summary.startswith("Completed 1/2 tasks")


class TestSequential:
    """Tests for run_sequential."""

    @pytest.mark.asyncio
    async def test_runs_in_order_on_one_agent(self, make_swarm, executor):
        """Tasks run one after another in submission order."""
        swarm = make_swarm(executor, max_agents=5)

        result = await swarm.run_sequential(["one", "two", "three"])

        assert result.success
        assert result.agents_used == 1
        assert len(swarm.get_agents()) == 1
        assert executor.prompts == ["one", "two", "three"]
        assert executor.max_active == 1
        assert "sequentially" in result.summary

    @pytest.mark.asyncio
    async def test_chain_stays_serial_with_spare_agents(self, make_swarm, executor):
        """Dependencies keep the chain serial even when more agents are idle."""
        swarm = make_swarm(executor, max_agents=5)
        swarm.create_agent("spare 1")
        swarm.create_agent("spare 2")

        result = await swarm.run_sequential(["one", "two", "three"])

        assert result.success
        assert executor.prompts == ["one", "two", "three"]
        assert executor.max_active == 1
        assert result.agents_used == len({r.agent_id for r in result.results.values()})

    @pytest.mark.asyncio
    async def test_failed_link_withdraws_the_rest(self, make_swarm):
        """After a terminal failure the blocked links are withdrawn."""
        executor = ScriptedExecutor(fail_prompts={"two"})
        swarm = make_swarm(executor, retry_limit=0)

        result = await asyncio.wait_for(swarm.run_sequential(["one", "two", "three"]), 2)

        assert result.success is False
        assert len(result.results) == 2
        assert "three" not in executor.prompts
        assert swarm.get_queue_snapshot() == []


class TestPipeline:
    """Tests for run_pipeline."""

    @pytest.mark.asyncio
    async def test_transform_receives_previous_output(self, make_swarm, executor):
        """Each stage after the first is derived from the previous output."""
        swarm = make_swarm(executor)
        seen = []

        def transform(previous_output, spec):
            seen.append((previous_output, spec.prompt))
            return TaskSpec(prompt=f"{spec.prompt} <- {previous_output}")

        result = await swarm.run_pipeline(["draft", "edit"], transform)

        assert result.success
        assert seen == [("done: draft", "edit")]
        assert executor.prompts == ["draft", "edit <- done: draft"]
        assert result.summary.startswith("Pipeline completed 2/2 stages")
        assert result.agents_used == 1

    @pytest.mark.asyncio
    async def test_short_circuit_on_failure(self, make_swarm):
        """A failing first stage ends the pipeline; stage 2 is never enqueued."""
        executor = ScriptedExecutor(fail_prompts={"S1"})
        swarm = make_swarm(executor, retry_limit=0)
        transformed = []

        def transform(previous_output, spec):
            transformed.append(spec)
            return spec

        result = await swarm.run_pipeline(["S1", "S2"], transform)

        assert result.success is False
        assert len(result.results) == 1
        assert list(result.results.values())[0].success is False
        assert executor.prompts == ["S1"]
        assert transformed == []
        assert swarm.get_queue_snapshot() == []

    @pytest.mark.asyncio
    async def test_default_transform_carries_output_as_context(self, make_swarm, executor):
        """carry_output puts the previous output into the next context."""
        swarm = make_swarm(executor)

        result = await swarm.run_pipeline(["first", TaskSpec(prompt="second", context="notes")])

        assert result.success
        assert executor.contexts[0] is None
        assert executor.contexts[1] == "notes\n\nOutput from previous stage:\ndone: first"

    def test_carry_output_without_context(self):
        """With no existing context the output becomes the context."""
        spec = carry_output("previous", TaskSpec(prompt="next", priority="high"))

        assert spec.context == "previous"
        assert spec.prompt == "next"
        assert spec.priority.value == "high"

    @pytest.mark.asyncio
    async def test_non_callable_transform_rejected(self, make_swarm):
        """A transform that is not callable is a configuration error."""
        swarm = make_swarm()

        with pytest.raises(ConfigurationError):
            await swarm.run_pipeline(["a", "b"], transform="not callable")


class TestPatternSelection:
    """Tests for run() and input validation."""

    @pytest.mark.asyncio
    async def test_sequential_hint(self, make_swarm, executor):
        """parallelism_hint='sequential' chains the tasks."""
        swarm = make_swarm(executor, parallelism_hint="sequential")

        result = await swarm.run(["a", "b"])

        assert "sequentially" in result.summary
        assert executor.max_active == 1

    @pytest.mark.asyncio
    async def test_adaptive_hint_fans_out(self, make_swarm):
        """adaptive runs several tasks in parallel."""
        executor = BarrierExecutor(parties=2)
        swarm = make_swarm(executor, parallelism_hint="adaptive", max_agents=4)

        result = await asyncio.wait_for(swarm.run(["a", "b"]), 2)

        assert result.success
        assert result.agents_used == 2
        assert executor.max_active == 2

    @pytest.mark.asyncio
    async def test_adaptive_single_task_runs_sequentially(self, make_swarm, executor):
        """adaptive with one task uses the sequential pattern."""
        swarm = make_swarm(executor, parallelism_hint="adaptive")

        result = await swarm.run(["only"])

        assert "sequentially" in result.summary

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["run_parallel", "run_sequential", "run_pipeline", "run"])
    async def test_empty_task_list_rejected(self, make_swarm, operation):
        """Empty input is a configuration error for every pattern."""
        swarm = make_swarm()

        with pytest.raises(ConfigurationError):
            await getattr(swarm, operation)([])

    @pytest.mark.asyncio
    async def test_bare_string_rejected(self, make_swarm):
        """A single string is not a task list."""
        swarm = make_swarm()

        with pytest.raises(ConfigurationError):
            await swarm.run_parallel("just one")
