"""Switchyard CLI main entry point.

This module defines the main Typer application and registers
all command groups for the Switchyard CLI.
"""

from pathlib import Path
from typing import Annotated

import typer

from switchyard import __version__
from switchyard.cli.commands import agent, config, queue
from switchyard.cli.formatters import console
from switchyard.cli.runtime import CLIState
from switchyard.observability import set_console_logging

app = typer.Typer(
    name="switchyard",
    help="Switchyard - Multi-Agent Task Assignment and Load Balancing",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(agent.app, name="agent")
app.add_typer(queue.app, name="queue")
app.add_typer(config.app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]Switchyard[/] version [green]{__version__}[/]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None,
        typer.Option(
            "--data-dir",
            help="Directory holding agents.json and workQueue.json.",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Config file (default: ~/.switchyard/config.yaml)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Print log events to stderr."),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Switchyard - Multi-Agent Task Assignment and Load Balancing.

    Routes queued tasks to specialized agents by capacity and keeps load
    spread evenly across them.

    Use [bold cyan]switchyard COMMAND --help[/] for command-specific help.
    """
    ctx.obj = CLIState(data_dir=data_dir, config_path=config_path, verbose=verbose)
    set_console_logging(verbose)


__all__ = ["app", "main"]
