"""Command-line interface for the HPA behavior simulator."""

import math
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from .config import RunConfig, behavior_to_yaml, get_template, load_config
from .config.config import MetricSettings
from .config.templates import TEMPLATES
from .core.errors import HPASimulationError
from .data.sources import SCENARIOS
from .simulation import Simulator, format_metrics_table

app = typer.Typer(name="hpa-sim", help="Kubernetes HPA configurable scaling behavior simulator")
console = Console()


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    if verbose:
        logger.add("logs/simulation_{time}.log", level="DEBUG")
        logger.add(lambda msg: console.print(msg, style="dim", end=""), level="INFO")
    else:
        logger.add(sys.stderr, level="WARNING")


def _fail(message: str) -> None:
    console.print(f"Error: {message}", style="bold red")
    raise typer.Exit(code=1)


def build_run_config(
    config: Optional[Path],
    template: Optional[str],
    scenario: Optional[str],
    formula: Optional[str],
    seed: Optional[int],
) -> RunConfig:
    """Resolve the run configuration from a file or template plus CLI overrides."""
    if config is not None and template is not None:
        raise ValueError("--config and --template are mutually exclusive")

    if config is not None:
        run_config = load_config(config)
    elif template is not None:
        run_config = RunConfig.from_template(template)
    else:
        run_config = RunConfig()

    overrides = {}
    if scenario is not None:
        overrides["scenario"] = scenario
    if formula is not None:
        overrides["formula"] = formula
        if scenario is None:
            overrides["scenario"] = "custom"
    if seed is not None:
        overrides["seed"] = seed

    if overrides:
        metric = MetricSettings(**{**run_config.metric.model_dump(), **overrides})
        run_config = run_config.model_copy(update={"metric": metric})
    return run_config


def display_decisions(simulator: Simulator, limit: int) -> None:
    """Display the most recent sync decisions."""
    table = Table(title=f"Last {limit} Sync Decisions")
    table.add_column("t (s)", justify="right", style="cyan")
    table.add_column("Metric", justify="right")
    table.add_column("Ratio", justify="right")
    table.add_column("Desired", justify="right")
    table.add_column("Stabilized", justify="right")
    table.add_column("Direction", style="magenta")
    table.add_column("Allowed", justify="right")
    table.add_column("Change", justify="right", style="yellow")
    table.add_column("Replicas", justify="right", style="green")
    table.add_column("Reason", style="dim")

    for record in simulator.decisions[-limit:]:
        allowed = "∞" if math.isinf(record.allowed_change) else f"{record.allowed_change:g}"
        table.add_row(
            f"{record.t:.0f}",
            f"{record.metric:.1f}",
            f"{record.ratio:.3f}",
            str(record.desired_raw),
            str(record.desired_stabilized),
            record.direction.value,
            allowed,
            f"{record.applied_change:+d}",
            str(record.replicas_after),
            record.reason,
        )

    console.print(table)


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Run configuration file"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="Template ID"),
    scenario: Optional[str] = typer.Option(None, "--scenario", "-s", help="Metric scenario"),
    formula: Optional[str] = typer.Option(None, "--formula", "-f", help="Custom f(t) formula"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the noisy scenario"),
    duration: Optional[float] = typer.Option(None, "--duration", "-d", help="Simulated seconds"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
    no_save: bool = typer.Option(False, "--no-save", help="Do not write results"),
    last: int = typer.Option(10, "--last", "-n", help="Number of decisions to show"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run a batch simulation."""
    _configure_logging(verbose)

    try:
        run_config = build_run_config(config, template, scenario, formula, seed)
        simulator = Simulator(run_config)
        console.print(
            f"Running '{run_config.metric.scenario}' scenario, replicas "
            f"{run_config.simulation.initial_replicas} in "
            f"[{run_config.simulation.min_replicas}, {run_config.simulation.max_replicas}]",
            style="bold blue",
        )
        results = simulator.run(duration)
    except (HPASimulationError, FileNotFoundError, ValueError) as e:
        _fail(str(e))

    if last > 0 and simulator.decisions:
        display_decisions(simulator, last)
    console.print(format_metrics_table(results["metrics"]))

    if not no_save:
        run_dir = simulator.save_results(str(output) if output is not None else None)
        console.print(f"Results saved to {run_dir}")

    console.print("Simulation completed", style="bold green")


@app.command()
def templates() -> None:
    """List the built-in behavior templates."""
    table = Table(title="Behavior Templates")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Replicas", justify="right")
    table.add_column("Description")

    for item in TEMPLATES:
        table.add_row(
            item.id,
            item.name,
            f"{item.initial_replicas} [{item.min_replicas}-{item.max_replicas}]",
            item.description,
        )

    console.print(table)


@app.command()
def behavior(template_id: str = typer.Argument(help="Template ID")) -> None:
    """Print a template's behavior stanza as YAML."""
    try:
        item = get_template(template_id)
    except HPASimulationError as e:
        _fail(str(e))

    console.print(Syntax(behavior_to_yaml(item.behavior), "yaml"))


@app.command()
def scenarios() -> None:
    """List the metric scenarios."""
    table = Table(title="Metric Scenarios")
    table.add_column("Scenario", style="cyan")
    table.add_column("Description")

    for name, description in SCENARIOS.items():
        table.add_row(name, description)

    console.print(table)


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
