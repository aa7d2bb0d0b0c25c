"""
Executors: the seam where real work is plugged into the swarm.

LiteLLMExecutor lives in taskswarm.executors.litellm_executor and is not
imported here so that litellm is only loaded when it is used.
"""

from taskswarm.executors.base import CallableExecutor, Executor
from taskswarm.executors.echo import EchoExecutor

__all__ = [
    "Executor",
    "CallableExecutor",
    "EchoExecutor",
]
