"""Switchyard core module - shared types, errors, and protocols.

This module provides:
- Result type for expected failures without exceptions
- Error hierarchy for the orchestration engine
- Secret masking helpers
"""

from switchyard.core.errors import (
    CapacityExceededError,
    ConfigError,
    ExecutionError,
    NoAvailableAgentError,
    NotFoundError,
    StorageError,
    SwitchyardError,
    ValidationError,
)
from switchyard.core.types import Result

__all__ = [
    # Types
    "Result",
    # Errors
    "SwitchyardError",
    "NotFoundError",
    "CapacityExceededError",
    "NoAvailableAgentError",
    "StorageError",
    "ExecutionError",
    "ConfigError",
    "ValidationError",
]
