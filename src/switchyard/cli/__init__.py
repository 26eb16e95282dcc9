"""Switchyard CLI module.

Command-line interface for registering agents, queueing work and
balancing load, built with Typer and Rich.
"""

from switchyard.cli.main import app

__all__ = ["app"]
