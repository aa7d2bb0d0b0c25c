"""Exceptions raised by the swarm engine."""


class SwarmError(Exception):
    """Base exception for swarm operations."""


class ConfigurationError(SwarmError, ValueError):
    """Raised for malformed input such as an empty task list."""


class AgentPoolFullError(SwarmError):
    """Raised when creating an agent would exceed max_agents."""


class DuplicateResultError(SwarmError):
    """Raised when a terminal result is written twice for one task id."""


class SwarmDisposedError(SwarmError):
    """Raised to waiters when the orchestrator is disposed."""
