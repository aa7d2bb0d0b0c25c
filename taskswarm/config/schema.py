"""Configuration schema using Pydantic."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SwarmConfig(BaseModel):
    """Swarm engine configuration. Frozen; use SwarmOrchestrator.update_config()."""
    model_config = ConfigDict(frozen=True)

    max_agents: int = Field(default=5, ge=1)  # Cap on agents in the pool
    default_model: str = "claude-3.5-sonnet"  # Model label for agents created without one
    task_timeout: float | None = Field(default=300.0, gt=0)  # Seconds; None disables
    retry_limit: int = Field(default=3, ge=0)  # Re-attempts after the first failure
    # Pattern chosen by SwarmOrchestrator.run()
    parallelism_hint: Literal["sequential", "parallel", "adaptive"] = "adaptive"
    agent_error_threshold: int = Field(default=0, ge=0)  # Consecutive failures before an agent errors; 0 disables


class ExecutorConfig(BaseModel):
    """Executor selection for the command line."""
    kind: Literal["echo", "litellm"] = "echo"
    api_key: str = ""
    api_base: str | None = None
    max_tokens: int = Field(default=2000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    echo_delay: float = Field(default=0.0, ge=0.0)  # Seconds the echo executor sleeps per task


class Config(BaseSettings):
    """Root configuration for taskswarm."""
    model_config = SettingsConfigDict(
        env_prefix="TASKSWARM_",
        env_nested_delimiter="__",
    )

    swarm: SwarmConfig = Field(default_factory=SwarmConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
