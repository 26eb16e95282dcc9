"""Observability module for Switchyard.

Main components:
- Logging: configure_logging, get_logger, bind_context, unbind_context
"""

from switchyard.observability.logging import (
    LoggingConfig,
    LogMode,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    get_mode_from_env,
    set_console_logging,
    unbind_context,
)

__all__ = [
    "LogMode",
    "LoggingConfig",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "get_mode_from_env",
    "set_console_logging",
    "unbind_context",
]
