"""LiteLLM-backed executor: runs each task as a chat completion."""

from typing import Any

from litellm import acompletion
from loguru import logger

from taskswarm.executors.base import Executor
from taskswarm.swarm.models import Agent, ExecutionOutput, Task


DEFAULT_SYSTEM_PROMPT = """You are {name}, a worker agent in a task swarm.
You are capable of:
- Following detailed instructions
- Producing clear, actionable output

Focus on your assigned task and provide clear results."""


class LiteLLMExecutor(Executor):
    """
    Executor that sends the task prompt to the agent's model via LiteLLM.

    Errors from the provider propagate so the swarm can count the attempt
    as failed and retry it.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ):
        self.api_key = api_key
        self.api_base = api_base
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_messages(self, agent: Agent, task: Task) -> list[dict[str, Any]]:
        system_prompt = agent.system_prompt or DEFAULT_SYSTEM_PROMPT.format(name=agent.name)
        messages = [{"role": "system", "content": system_prompt}]

        if task.context:
            messages.append({"role": "user", "content": f"Context:\n{task.context}"})

        messages.append({"role": "user", "content": task.prompt})
        return messages

    async def execute(self, agent: Agent, task: Task) -> ExecutionOutput:
        kwargs: dict[str, Any] = {
            "model": agent.model,
            "messages": self.build_messages(agent, task),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        logger.debug(f"Agent {agent.id} calling {agent.model} for {task.id}")
        response = await acompletion(**kwargs)

        content = response.choices[0].message.content or ""
        tokens = 0
        if getattr(response, "usage", None):
            tokens = response.usage.total_tokens or 0

        return ExecutionOutput(text=content, tokens=tokens)
