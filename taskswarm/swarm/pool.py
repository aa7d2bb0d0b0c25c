"""
Agent pool for the swarm.

Owns the registry of agents and their state machine:

    idle --assign--> running --release--> idle
    running --pause--> paused --resume--> idle
    idle --retire--> completed
    running --(error threshold)--> error --reset--> idle
"""

from datetime import datetime

from loguru import logger

from taskswarm.swarm.errors import AgentPoolFullError
from taskswarm.swarm.events import SwarmEvents
from taskswarm.swarm.models import Agent, AgentStatus, Task, new_agent_id


class AgentPool:
    """
    Registry of agents.

    Manages agent lifecycle and status transitions. Lookups with an
    unknown id return None or False rather than raising.
    """

    def __init__(
        self,
        events: SwarmEvents,
        max_agents: int = 5,
        default_model: str = "claude-3.5-sonnet",
    ):
        self.events = events
        self.max_agents = max_agents
        self.default_model = default_model

        self._agents: dict[str, Agent] = {}

    def create(
        self,
        name: str,
        system_prompt: str | None = None,
        model: str | None = None,
    ) -> Agent:
        """Create an idle agent."""
        if len(self._agents) >= self.max_agents:
            raise AgentPoolFullError(
                f"Cannot create '{name}': pool already holds {self.max_agents} agents"
            )

        agent = Agent(
            id=new_agent_id(),
            name=name,
            model=model or self.default_model,
            system_prompt=system_prompt,
        )
        self._agents[agent.id] = agent
        logger.debug(f"Created agent {agent.id} ({name}, {agent.model})")

        self.events.emit_agent_changed(agent)
        return agent

    def remove(self, agent_id: str) -> bool:
        """Evict an agent, pausing it first if it is running."""
        agent = self._agents.get(agent_id)
        if not agent:
            return False

        if agent.status == AgentStatus.RUNNING:
            self.pause(agent_id)

        del self._agents[agent_id]
        logger.debug(f"Removed agent {agent_id}")
        return True

    def get(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def list_all(self) -> list[Agent]:
        return list(self._agents.values())

    def list_idle(self) -> list[Agent]:
        return [a for a in self._agents.values() if a.status == AgentStatus.IDLE]

    def list_active(self) -> list[Agent]:
        return [a for a in self._agents.values() if a.status == AgentStatus.RUNNING]

    def pause(self, agent_id: str) -> bool:
        agent = self._agents.get(agent_id)
        if not agent or agent.status != AgentStatus.RUNNING:
            return False

        agent.status = AgentStatus.PAUSED
        agent.current_task = None
        self.events.emit_agent_changed(agent)
        return True

    def resume(self, agent_id: str) -> bool:
        agent = self._agents.get(agent_id)
        if not agent or agent.status != AgentStatus.PAUSED:
            return False

        agent.status = AgentStatus.IDLE
        self.events.emit_agent_changed(agent)
        return True

    def reset(self, agent_id: str) -> bool:
        """Return an escalated agent to service."""
        agent = self._agents.get(agent_id)
        if not agent or agent.status != AgentStatus.ERROR:
            return False

        agent.status = AgentStatus.IDLE
        agent.consecutive_failures = 0
        self.events.emit_agent_changed(agent)
        return True

    def retire(self, agent_id: str) -> bool:
        """Take an idle agent out of rotation, keeping its history."""
        agent = self._agents.get(agent_id)
        if not agent or agent.status != AgentStatus.IDLE:
            return False

        agent.status = AgentStatus.COMPLETED
        self.events.emit_agent_changed(agent)
        return True

    def assign(self, agent: Agent, task: Task) -> None:
        agent.status = AgentStatus.RUNNING
        agent.current_task = task
        agent.last_active_at = datetime.now()
        self.events.emit_agent_changed(agent)

    def release(self, agent: Agent) -> None:
        """Finish an attempt. Agents paused mid-attempt stay paused."""
        agent.current_task = None
        agent.last_active_at = datetime.now()
        if agent.status == AgentStatus.RUNNING:
            agent.status = AgentStatus.IDLE
        self.events.emit_agent_changed(agent)

    def escalate(self, agent: Agent, reason: str) -> None:
        agent.status = AgentStatus.ERROR
        agent.current_task = None
        logger.warning(f"Agent {agent.id} ({agent.name}) escalated to error: {reason}")
        self.events.emit_agent_changed(agent)

    def clear(self) -> None:
        self._agents.clear()

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents
