"""
Swarm system for taskswarm.

Provides multi-agent coordination:
- Agent pool with a per-agent state machine
- Priority and dependency aware task queue
- Concurrent dispatcher with retries and timeouts
- Parallel, sequential and pipeline patterns
"""

from taskswarm.swarm.errors import (
    AgentPoolFullError,
    ConfigurationError,
    DuplicateResultError,
    SwarmDisposedError,
    SwarmError,
)
from taskswarm.swarm.models import (
    Agent,
    AgentMetrics,
    AgentStatus,
    ExecutionOutput,
    OrchestrationResult,
    Task,
    TaskPriority,
    TaskResult,
    TaskSpec,
)
from taskswarm.swarm.events import SwarmEvents, SwarmObserver
from taskswarm.swarm.pool import AgentPool
from taskswarm.swarm.queue import TaskQueue
from taskswarm.swarm.results import ResultStore
from taskswarm.swarm.retry import RetryPolicy
from taskswarm.swarm.dispatcher import Dispatcher
from taskswarm.swarm.patterns import OrchestrationPatterns, carry_output
from taskswarm.swarm.orchestrator import SwarmOrchestrator

__all__ = [
    # Errors
    "SwarmError",
    "ConfigurationError",
    "AgentPoolFullError",
    "DuplicateResultError",
    "SwarmDisposedError",
    # Models
    "Agent",
    "AgentMetrics",
    "AgentStatus",
    "ExecutionOutput",
    "OrchestrationResult",
    "Task",
    "TaskPriority",
    "TaskResult",
    "TaskSpec",
    # Components
    "SwarmEvents",
    "SwarmObserver",
    "AgentPool",
    "TaskQueue",
    "ResultStore",
    "RetryPolicy",
    "Dispatcher",
    "OrchestrationPatterns",
    "carry_output",
    "SwarmOrchestrator",
]
