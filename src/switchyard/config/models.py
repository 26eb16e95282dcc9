"""Pydantic models for Switchyard configuration.

This module defines the configuration schema using Pydantic v2.
All configuration validation happens through these models.

Classes:
    StorageConfig: Where JSON data files live
    BalancerConfig: Periodic rebalancing and spread threshold
    MonitorConfig: Heartbeat monitoring
    ExecutorConfig: How dispatched tasks are executed
    NotificationsConfig: Post-completion notifications
    LoggingConfig: Logging configuration
    SwitchyardConfig: Top-level configuration combining all sections
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def get_config_dir() -> Path:
    """Get the Switchyard configuration directory path.

    Returns:
        Path to ~/.switchyard/
    """
    return Path.home() / ".switchyard"


class StorageConfig(BaseModel, frozen=True):
    """Storage configuration.

    Attributes:
        data_dir: Directory holding <key>.json files.
    """

    data_dir: Path = Field(default_factory=lambda: get_config_dir() / "data")

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Expand ~ in data_dir."""
        return v.expanduser()


class BalancerConfig(BaseModel, frozen=True):
    """Load balancer configuration.

    Attributes:
        interval_seconds: Seconds between periodic rebalance passes.
        stddev_threshold: Load-ratio spread above which balancing is needed.
    """

    interval_seconds: float = Field(default=60.0, gt=0)
    stddev_threshold: float = Field(default=0.2, ge=0.0, le=1.0)


class MonitorConfig(BaseModel, frozen=True):
    """Heartbeat monitor configuration.

    Attributes:
        heartbeat_frequency: Seconds between heartbeat checks. An agent
            silent for twice this long is marked DISCONNECTED.
    """

    heartbeat_frequency: float = Field(default=5.0, gt=0)


class ExecutorConfig(BaseModel, frozen=True):
    """Task executor configuration.

    Attributes:
        kind: Which executor `agent start` uses by default.
        default_timeout: Seconds before a running task is abandoned.
        command: Shell command template for the local executor.
        worker_url: Endpoint for the remote executor.
        max_retries: Attempts for transient remote failures.
    """

    kind: Literal["mock", "local", "remote"] = "mock"
    default_timeout: float = Field(default=30 * 60.0, gt=0)
    command: str = 'echo "$SWITCHYARD_TASK_DESCRIPTION"'
    worker_url: str | None = None
    max_retries: int = Field(default=3, ge=1)


class NotificationsConfig(BaseModel, frozen=True):
    """Post-completion notification configuration.

    Attributes:
        enabled: Whether completions trigger notifications.
        webhook_url: Slack-compatible incoming webhook. When unset,
            notifications only go to the log.
        channel: Optional channel override sent with each message.
    """

    enabled: bool = False
    webhook_url: str | None = None
    channel: str | None = None


class LoggingConfig(BaseModel, frozen=True):
    """Logging configuration.

    Attributes:
        level: Log level (debug, info, warning, error)
        enable_file_logging: Whether to write the rotating JSON log file.
    """

    level: Literal["debug", "info", "warning", "error"] = "info"
    enable_file_logging: bool = True


class SwitchyardConfig(BaseModel, frozen=True):
    """Top-level Switchyard configuration.

    Validates against config.yaml in ~/.switchyard/.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    balancer: BalancerConfig = Field(default_factory=BalancerConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_config() -> SwitchyardConfig:
    """Get the default Switchyard configuration."""
    return SwitchyardConfig()
