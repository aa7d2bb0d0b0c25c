"""CLI commands for taskswarm."""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from taskswarm import __logo__, __version__

app = typer.Typer(
    name="taskswarm",
    help=f"{__logo__} taskswarm - multi-agent task orchestration",
    no_args_is_help=True,
)

console = Console()

MODES = ("auto", "parallel", "sequential", "pipeline")


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} taskswarm v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """taskswarm - multi-agent task orchestration."""
    pass


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _build_executor(config):
    """Create the executor selected in the config."""
    from taskswarm.executors import EchoExecutor

    if config.executor.kind == "litellm":
        from taskswarm.executors.litellm_executor import LiteLLMExecutor

        return LiteLLMExecutor(
            api_key=config.executor.api_key or None,
            api_base=config.executor.api_base,
            max_tokens=config.executor.max_tokens,
            temperature=config.executor.temperature,
        )

    return EchoExecutor(delay=config.executor.echo_delay)


def _results_table(result) -> Table:
    table = Table(title="Task Results")
    table.add_column("Task", style="cyan")
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Output")

    for task_result in result.results.values():
        status = "[green]✓[/green]" if task_result.success else "[red]✗[/red]"
        text = task_result.output if task_result.success else (task_result.error or "")
        table.add_row(
            task_result.task_id,
            task_result.agent_id,
            status,
            str(task_result.attempts),
            f"{task_result.duration:.2f}s",
            text[:80] + ("..." if len(text) > 80 else ""),
        )

    return table


# ============================================================================
# Run
# ============================================================================


@app.command()
def run(
    prompts: list[str] = typer.Argument(..., help="Task prompts, one per task"),
    mode: str = typer.Option("auto", "--mode", "-m", help="auto, parallel, sequential or pipeline"),
    agents: int = typer.Option(None, "--agents", "-a", help="Maximum number of agents"),
    copies: int = typer.Option(1, "--copies", "-n", help="Fan a single prompt out to N agents"),
    executor: str = typer.Option(None, "--executor", "-e", help="Executor: echo or litellm"),
    model: str = typer.Option(None, "--model", help="Model for created agents"),
    retry_limit: int = typer.Option(None, "--retry-limit", "-r", help="Re-attempts per failed task"),
    timeout: float = typer.Option(None, "--timeout", "-t", help="Per-task timeout in seconds"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Run tasks through the swarm."""
    from taskswarm.config.loader import load_config
    from taskswarm.config.schema import ExecutorConfig, SwarmConfig
    from taskswarm.swarm import SwarmOrchestrator, TaskSpec

    _configure_logging(verbose)

    if mode not in MODES:
        console.print(f"[red]Error: unknown mode '{mode}' (choose from {', '.join(MODES)})[/red]")
        raise typer.Exit(1)

    config = load_config(config_path)

    overrides = {
        "max_agents": agents,
        "default_model": model,
        "retry_limit": retry_limit,
        "task_timeout": timeout,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    try:
        swarm_config = SwarmConfig.model_validate({**config.swarm.model_dump(), **overrides})
        if executor:
            config.executor = ExecutorConfig.model_validate(
                {**config.executor.model_dump(), "kind": executor}
            )
    except ValidationError as e:
        console.print(f"[red]Error: invalid option: {e}[/red]")
        raise typer.Exit(1)

    if copies > 1 and len(prompts) == 1:
        specs = [
            TaskSpec(prompt=f"{prompts[0]} (Agent {i + 1} of {copies})")
            for i in range(copies)
        ]
    else:
        specs = [TaskSpec(prompt=prompt) for prompt in prompts]

    console.print(f"{__logo__} Running {len(specs)} task(s) in [cyan]{mode}[/cyan] mode")
    console.print(f"  Executor: {config.executor.kind}")
    console.print(f"  Max agents: {swarm_config.max_agents}")
    console.print("")

    async def run_swarm():
        orchestrator = SwarmOrchestrator(_build_executor(config), swarm_config)
        try:
            if mode == "parallel":
                return await orchestrator.run_parallel(specs)
            if mode == "sequential":
                return await orchestrator.run_sequential(specs)
            if mode == "pipeline":
                return await orchestrator.run_pipeline(specs)
            return await orchestrator.run(specs)
        finally:
            orchestrator.dispose()

    result = asyncio.run(run_swarm())

    console.print(_results_table(result))
    console.print("")
    color = "green" if result.success else "red"
    console.print(f"[{color}]{result.summary}[/{color}] (agents used: {result.agents_used})")

    if not result.success:
        raise typer.Exit(1)


# ============================================================================
# Config Commands
# ============================================================================

config_app = typer.Typer(help="Manage configuration")
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show the effective configuration."""
    from taskswarm.config.loader import get_config_path, load_config

    config = load_config(config_path)
    path = config_path or get_config_path()

    table = Table(title=f"Configuration ({path})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for key, value in config.swarm.model_dump().items():
        table.add_row(f"swarm.{key}", str(value))
    for key, value in config.executor.model_dump().items():
        if key == "api_key" and value:
            value = "********"
        table.add_row(f"executor.{key}", str(value))

    console.print(table)


@config_app.command("init")
def config_init(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a default configuration file."""
    from taskswarm.config.loader import get_config_path, save_config
    from taskswarm.config.schema import Config

    path = config_path or get_config_path()

    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config(), path)
    console.print(f"[green]✓[/green] Created config at {path}")


if __name__ == "__main__":
    app()
