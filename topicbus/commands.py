"""Typer command handlers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from topicbus.examples import EXAMPLES
from topicbus.options import DEFAULT_OPTIONS_PATH, load_scheduler_options

logger = logging.getLogger("topicbus.cli")


def examples_list() -> None:
    """Print the bundled examples."""
    for name, example in EXAMPLES.items():
        typer.echo(f"{name}: {example.description}")


def examples_run(name: str) -> None:
    """Run one bundled example, echoing what its callbacks receive."""
    example = EXAMPLES.get(name)
    if example is None:
        typer.echo(f"Unknown example: {name}. Choose from: {', '.join(EXAMPLES)}", err=True)
        raise typer.Exit(code=1)
    logger.debug("Running example %s", name)
    example.run(typer.echo)


def config_show(file: Path | None = None) -> None:
    """Show effective scheduler limits, read from config/scheduler.yaml unless a file is given."""
    path = file if file is not None else DEFAULT_OPTIONS_PATH
    try:
        options = load_scheduler_options(path)
    except ValueError as exc:
        typer.echo(f"Invalid options file {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(options.limits(), indent=2))
