"""Command line entry point for the polymer probe."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config.loader import PlanLoadError, load_plan
from .config.settings import parse_listen_address, settings

console = Console()
app = typer.Typer(
    name="polymer",
    help="Synthetic browser probe exporting step timings to Prometheus",
    add_completion=False,
)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_or_exit(config: Path):
    try:
        return load_plan(config)
    except PlanLoadError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def serve(
    listen_address: str = typer.Option(
        settings.listen_address, "--listen-address", help="The address to listen on for HTTP requests."
    ),
    config: Path = typer.Option(
        Path(settings.config_file), "--config", help="The config file to load for synthetics"
    ),
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
) -> None:
    """Serve /probe and /metrics."""
    from .app import create_app

    _configure_logging(log_level)
    try:
        host, port = parse_listen_address(listen_address)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--listen-address") from e

    plan = _load_or_exit(config)
    run_settings = replace(settings, config_file=str(config), listen_address=listen_address)

    logging.getLogger(__name__).info("Starting polymer %s on %s:%d", __version__, host, port)
    uvicorn.run(create_app(run_settings, plan=plan), host=host, port=port, log_level=log_level.lower())


@app.command()
def check(
    config: Path = typer.Option(
        Path(settings.config_file), "--config", help="The config file to validate"
    ),
) -> None:
    """Validate a plan file and print its steps without starting a browser."""
    plan = _load_or_exit(config)

    table = Table(title=f"{plan.name or '(unnamed)'} ({len(plan.steps)} steps)")
    table.add_column("#", justify="right")
    table.add_column("step")
    table.add_column("action")
    table.add_column("type")
    table.add_column("target")
    for i, step in enumerate(plan.steps, start=1):
        target = step.options.get("url", "") or ", ".join(
            f"{inp.action} {inp.element.identifier}" for inp in step.inputs
        )
        table.add_row(str(i), step.name, step.action, step.effective_type(plan.default_type), target)
    console.print(table)

    duplicates = plan.duplicate_step_names()
    if duplicates:
        console.print(f"[yellow]duplicate step names: {', '.join(duplicates)}[/yellow]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
