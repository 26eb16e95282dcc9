"""Config command group for Switchyard.

Create and inspect ~/.switchyard/config.yaml.
"""

from typing import Annotated

import typer

from switchyard.cli.formatters.panels import print_info, print_success
from switchyard.cli.formatters.tables import create_key_value_table, print_table
from switchyard.cli.runtime import get_state, handle_errors
from switchyard.config import (
    create_default_config,
    get_config_dir,
    load_config,
    resolve_data_dir,
)
from switchyard.config.loader import CONFIG_FILE_NAME
from switchyard.core.security import mask_secret

app = typer.Typer(
    name="config",
    help="Manage Switchyard configuration.",
    no_args_is_help=True,
)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write the default configuration to ~/.switchyard/config.yaml."""
    with handle_errors():
        path = create_default_config(overwrite=force)
    print_success(f"Configuration written to {path}", title="Config initialized")


@app.command()
def show(ctx: typer.Context) -> None:
    """Display the effective configuration."""
    state = get_state(ctx)
    config_path = state.config_path or get_config_dir() / CONFIG_FILE_NAME
    with handle_errors():
        config = load_config(config_path)

    if not config_path.exists():
        print_info(f"No config file at {config_path}; using defaults")

    webhook = config.notifications.webhook_url
    rows = {
        "config_file": config_path,
        "data_dir": resolve_data_dir(config, state.data_dir),
        "balancer.interval_seconds": config.balancer.interval_seconds,
        "balancer.stddev_threshold": config.balancer.stddev_threshold,
        "monitor.heartbeat_frequency": config.monitor.heartbeat_frequency,
        "executor.kind": config.executor.kind,
        "executor.default_timeout": config.executor.default_timeout,
        "executor.worker_url": config.executor.worker_url or "-",
        "notifications.enabled": config.notifications.enabled,
        "notifications.webhook_url": mask_secret(webhook) if webhook else "-",
        "logging.level": config.logging.level,
    }
    print_table(create_key_value_table(rows, "Current Configuration"))


__all__ = ["app"]
