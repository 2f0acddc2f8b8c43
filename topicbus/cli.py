"""CLI entrypoint for topicbus."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from topicbus import commands

app = typer.Typer(help="In-process publish/subscribe toolkit")
examples_app = typer.Typer(help="Usage examples")
config_app = typer.Typer(help="Configuration commands")


@app.callback()
def configure(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log scheduler activity")) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@examples_app.command("list")
def examples_list_cmd() -> None:
    """List bundled examples."""
    commands.examples_list()


@examples_app.command("run")
def examples_run_cmd(name: str = typer.Argument(..., help="Example name")) -> None:
    """Run a bundled example."""
    commands.examples_run(name=name)


@config_app.command("show")
def config_show_cmd(
    file: Path | None = typer.Option(
        None, "--file", "-f", help="YAML file with scheduler limits (default: config/scheduler.yaml)"
    ),
) -> None:
    """Show effective scheduler limits."""
    commands.config_show(file=file)


app.add_typer(examples_app, name="examples")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
