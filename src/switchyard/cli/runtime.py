"""Shared wiring for CLI commands.

Each command runs in its own process, so it loads the config, opens
storage and reloads the registry and queue before doing anything. Helpers
here keep that sequence and the error-to-exit-code mapping in one place.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer

from switchyard.cli.formatters.panels import print_switchyard_error, print_warning
from switchyard.config import SwitchyardConfig, get_config_dir, load_config, resolve_data_dir
from switchyard.core.errors import SwitchyardError
from switchyard.integrations import LogNotifier, NotificationIntegration, SlackWebhookNotifier
from switchyard.observability import (
    LoggingConfig,
    configure_logging,
    get_logger,
    get_mode_from_env,
    set_console_logging,
)
from switchyard.orchestration import (
    AgentMonitor,
    AgentRegistry,
    AssignmentEngine,
    LoadBalancer,
    LocalProcessExecutor,
    MockExecutor,
    RemoteWorkerExecutor,
    TaskExecutor,
)
from switchyard.persistence import JsonFileStorage, MetricsRecorder, WorkQueue

log = get_logger(__name__)


@dataclass(slots=True)
class CLIState:
    """Global options captured by the root callback."""

    data_dir: Path | None = None
    config_path: Path | None = None
    verbose: bool = False


@dataclass(slots=True)
class Runtime:
    """Loaded components for one CLI invocation."""

    config: SwitchyardConfig
    storage: JsonFileStorage
    registry: AgentRegistry
    queue: WorkQueue
    metrics: MetricsRecorder

    def engine(self) -> AssignmentEngine:
        return AssignmentEngine(self.registry, self.queue)

    def balancer(self) -> LoadBalancer:
        return LoadBalancer(self.registry, stddev_threshold=self.config.balancer.stddev_threshold)

    def monitor(self) -> AgentMonitor:
        return AgentMonitor(self.registry, heartbeat_frequency=self.config.monitor.heartbeat_frequency)


def get_state(ctx: typer.Context) -> CLIState:
    root = ctx.find_root()
    if not isinstance(root.obj, CLIState):
        root.obj = CLIState()
    return root.obj


def _configure_logging(config: SwitchyardConfig, state: CLIState) -> None:
    level = "DEBUG" if state.verbose else config.logging.level.upper()
    configure_logging(
        LoggingConfig(
            mode=get_mode_from_env(),
            log_level=level,
            log_dir=get_config_dir() / "logs",
            enable_file_logging=config.logging.enable_file_logging,
        )
    )
    set_console_logging(state.verbose)


async def open_runtime(state: CLIState) -> Runtime:
    """Load config and reload persisted state.

    Raises:
        ConfigError: If the config file exists but is invalid.
    """
    config = load_config(state.config_path)
    _configure_logging(config, state)

    data_dir = resolve_data_dir(config, state.data_dir)
    storage = JsonFileStorage(data_dir)
    registry = AgentRegistry(storage)
    queue = WorkQueue(storage)
    metrics = MetricsRecorder(storage)
    await registry.initialize()
    await queue.initialize()
    await metrics.initialize()

    log.debug("cli.runtime.opened", data_dir=str(data_dir))
    return Runtime(
        config=config, storage=storage, registry=registry, queue=queue, metrics=metrics
    )


def build_executor(runtime: Runtime, kind: str | None = None) -> TaskExecutor:
    """Create the executor named by ``kind`` (config default if None).

    Raises:
        typer.BadParameter: Unknown kind, or remote without a worker URL.
    """
    settings = runtime.config.executor
    kind = kind or settings.kind

    if kind == "mock":
        return MockExecutor()
    if kind == "local":
        return LocalProcessExecutor(settings.command, default_timeout=settings.default_timeout)
    if kind == "remote":
        if not settings.worker_url:
            raise typer.BadParameter("executor.worker_url must be set for the remote executor")
        return RemoteWorkerExecutor(
            settings.worker_url,
            max_retries=settings.max_retries,
            default_timeout=settings.default_timeout,
        )
    raise typer.BadParameter(f"Unknown executor '{kind}'. Use mock, local or remote.")


def build_notifier(runtime: Runtime) -> NotificationIntegration | None:
    settings = runtime.config.notifications
    if not settings.enabled:
        return None
    if settings.webhook_url:
        return SlackWebhookNotifier(settings.webhook_url, channel=settings.channel)
    return LogNotifier()


def warn_if_not_durable(registry: AgentRegistry) -> None:
    """Tell the user when the last registry save failed."""
    if registry.last_persist_error is not None:
        print_warning(
            "Changes were applied but could not be saved: "
            f"{registry.last_persist_error.message}",
            title="Not persisted",
        )


@contextmanager
def handle_errors() -> Iterator[None]:
    """Render domain errors as a red panel and exit with status 1."""
    try:
        yield
    except SwitchyardError as e:
        print_switchyard_error(e)
        raise typer.Exit(1) from e


__all__ = [
    "CLIState",
    "Runtime",
    "build_executor",
    "build_notifier",
    "get_state",
    "handle_errors",
    "open_runtime",
    "warn_if_not_durable",
]
