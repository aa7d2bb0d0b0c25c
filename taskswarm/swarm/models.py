"""
Data model for the swarm engine.

Agents are mutable and owned by the AgentPool. Tasks and results are
frozen once created; a retry is a copy of the same task with a bumped
attempt counter.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from taskswarm.swarm.errors import ConfigurationError


class AgentStatus(str, Enum):
    """Lifecycle state of an agent."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"  # retired via AgentPool.retire()
    ERROR = "error"  # escalated after repeated failures
    WAITING = "waiting"


class TaskPriority(str, Enum):
    """Priority tier of a task. Lower rank is dispatched first."""
    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.CRITICAL: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.NORMAL: 2,
    TaskPriority.LOW: 3,
}


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:12]}"


def new_agent_id() -> str:
    return f"agent_{uuid.uuid4().hex[:12]}"


@dataclass
class TaskSpec:
    """A task as described by a caller, before it is given an id."""
    prompt: str
    context: str | None = None
    priority: TaskPriority | str = TaskPriority.NORMAL
    dependencies: frozenset[str] | set[str] | list[str] | tuple[str, ...] = frozenset()
    timeout: float | None = None  # seconds

    def __post_init__(self):
        self.priority = TaskPriority(self.priority)
        if isinstance(self.dependencies, str):
            raise ConfigurationError("TaskSpec.dependencies must be a collection of task ids, not a string")
        self.dependencies = frozenset(self.dependencies or ())


@dataclass(frozen=True)
class Task:
    """A queued unit of work. The id never changes across retries."""
    id: str
    prompt: str
    context: str | None = None
    priority: TaskPriority = TaskPriority.NORMAL
    dependencies: frozenset[str] = frozenset()
    timeout: float | None = None
    attempt: int = 0

    @classmethod
    def from_spec(cls, spec: TaskSpec, task_id: str | None = None) -> "Task":
        return cls(
            id=task_id or new_task_id(),
            prompt=spec.prompt,
            context=spec.context,
            priority=TaskPriority(spec.priority),
            dependencies=frozenset(spec.dependencies),
            timeout=spec.timeout,
        )

    def to_spec(self) -> TaskSpec:
        return TaskSpec(
            prompt=self.prompt,
            context=self.context,
            priority=self.priority,
            dependencies=self.dependencies,
            timeout=self.timeout,
        )


@dataclass(frozen=True)
class TaskResult:
    """Terminal outcome of a task."""
    task_id: str
    agent_id: str
    success: bool
    output: str
    duration: float = 0.0
    error: str | None = None
    error_kind: str | None = None  # "executor_failure" or "timeout"
    attempts: int = 1


@dataclass
class ExecutionOutput:
    """Output of an executor that also reports token usage."""
    text: str
    tokens: int = 0


@dataclass
class AgentMetrics:
    """Per-agent counters, updated after every attempt."""
    tasks_completed: int = 0
    tasks_failed: int = 0
    total_tokens: int = 0
    total_duration: float = 0.0
    average_task_duration: float = 0.0

    def record_attempt(self, success: bool, duration: float, tokens: int = 0) -> None:
        if success:
            self.tasks_completed += 1
        else:
            self.tasks_failed += 1
        self.total_tokens += tokens
        self.total_duration += duration
        attempts = self.tasks_completed + self.tasks_failed
        self.average_task_duration = self.total_duration / max(attempts, 1)


@dataclass
class Agent:
    """A stateful worker that runs at most one task at a time."""
    id: str
    name: str
    model: str
    system_prompt: str | None = None
    status: AgentStatus = AgentStatus.IDLE
    current_task: Task | None = None
    completed_task_ids: list[str] = field(default_factory=list)
    failed_task_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_active_at: datetime = field(default_factory=datetime.now)
    output_log: list[str] = field(default_factory=list)
    metrics: AgentMetrics = field(default_factory=AgentMetrics)
    consecutive_failures: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "model": self.model,
            "current_task": self.current_task.id if self.current_task else None,
            "completed_tasks": len(self.completed_task_ids),
            "failed_tasks": len(self.failed_task_ids),
            "created_at": self.created_at.isoformat(),
            "last_active_at": self.last_active_at.isoformat(),
            "metrics": {
                "tasks_completed": self.metrics.tasks_completed,
                "tasks_failed": self.metrics.tasks_failed,
                "total_tokens": self.metrics.total_tokens,
                "total_duration": self.metrics.total_duration,
                "average_task_duration": self.metrics.average_task_duration,
            },
        }


@dataclass
class OrchestrationResult:
    """Aggregate outcome of an orchestration pattern."""
    success: bool
    results: dict[str, TaskResult]
    duration: float
    agents_used: int
    summary: str

    @property
    def failed(self) -> list[TaskResult]:
        return [r for r in self.results.values() if not r.success]
