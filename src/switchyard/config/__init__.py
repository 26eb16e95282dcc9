"""Configuration module for Switchyard.

Configuration is stored in ~/.switchyard/config.yaml; every value has a
default so the file is optional.

Usage:
    from switchyard.config import load_config

    config = load_config()
    interval = config.balancer.interval_seconds
"""

from switchyard.config.loader import (
    create_default_config,
    ensure_config_dir,
    load_config,
    resolve_data_dir,
)
from switchyard.config.models import (
    BalancerConfig,
    ExecutorConfig,
    LoggingConfig,
    MonitorConfig,
    NotificationsConfig,
    StorageConfig,
    SwitchyardConfig,
    get_config_dir,
    get_default_config,
)

__all__ = [
    # Models
    "SwitchyardConfig",
    "StorageConfig",
    "BalancerConfig",
    "MonitorConfig",
    "ExecutorConfig",
    "NotificationsConfig",
    "LoggingConfig",
    # Loader functions
    "load_config",
    "create_default_config",
    "ensure_config_dir",
    "resolve_data_dir",
    # Model helpers
    "get_config_dir",
    "get_default_config",
]
