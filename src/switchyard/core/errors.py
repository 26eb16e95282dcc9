"""Error hierarchy for Switchyard.

This module defines the exception hierarchy for Switchyard. Registry,
assignment and balancing operations raise these directly; executors wrap
expected failures in Result instead.

Exception Hierarchy:
    SwitchyardError (base)
    ├── NotFoundError          - Unknown agent or task id
    ├── CapacityExceededError  - Explicit assignment to a full agent
    ├── NoAvailableAgentError  - Auto-assignment found no eligible agent
    ├── StorageError           - Storage read/write failures (IOError kind)
    ├── ExecutionError         - Task execution failures
    ├── ConfigError            - Configuration issues
    └── ValidationError        - Invalid input values
"""

from typing import Any


class SwitchyardError(Exception):
    """Base exception for all Switchyard errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dict with additional context.
    """

    kind: str = "SwitchyardError"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Optional dict with additional context about the error.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class NotFoundError(SwitchyardError):
    """Raised when an agent or task id is unknown.

    Attributes:
        entity: What was looked up ("agent" or "task").
        identifier: The id that was not found.
    """

    kind = "NotFound"

    def __init__(
        self,
        entity: str,
        identifier: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{entity.capitalize()} with ID {identifier} not found", details)
        self.entity = entity
        self.identifier = identifier


class CapacityExceededError(SwitchyardError):
    """Raised when a task is explicitly assigned to an agent that is full.

    Attributes:
        agent_id: The full agent.
        capacity: Its capacity.
        current_load: Its load at the time of the request.
    """

    kind = "CapacityExceeded"

    def __init__(
        self,
        agent_id: str,
        *,
        capacity: int,
        current_load: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"Agent {agent_id} is at capacity ({current_load}/{capacity})",
            details,
        )
        self.agent_id = agent_id
        self.capacity = capacity
        self.current_load = current_load


class NoAvailableAgentError(SwitchyardError):
    """Raised when auto-assignment cannot find any eligible agent.

    Attributes:
        task_id: Task being assigned.
        specialization: Specialization derived for the task.
    """

    kind = "NoAvailableAgent"

    def __init__(
        self,
        task_id: str,
        specialization: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"No available agents for task {task_id} (specialization {specialization})",
            details,
        )
        self.task_id = task_id
        self.specialization = specialization


class StorageError(SwitchyardError):
    """Error from storage read/write operations.

    Attributes:
        key: Storage key involved.
        operation: The operation that failed ("load" or "save").
    """

    kind = "IOError"

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.key = key
        self.operation = operation


class ExecutionError(SwitchyardError):
    """Error from executing a task on an agent.

    Attributes:
        task_id: The task that failed.
        agent_id: The agent it ran on.
    """

    kind = "ExecutionError"

    def __init__(
        self,
        message: str,
        *,
        task_id: str | None = None,
        agent_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.task_id = task_id
        self.agent_id = agent_id

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        *,
        task_id: str | None = None,
        agent_id: str | None = None,
    ) -> "ExecutionError":
        """Create ExecutionError from an arbitrary exception.

        Args:
            exc: The original exception.
            task_id: Task being executed.
            agent_id: Agent executing it.

        Returns:
            An ExecutionError with __cause__ set to the original exception.
        """
        error = cls(
            f"Task {task_id} failed on agent {agent_id}: {exc}",
            task_id=task_id,
            agent_id=agent_id,
            details={"original_exception": type(exc).__name__},
        )
        error.__cause__ = exc
        return error


class ConfigError(SwitchyardError):
    """Error from configuration operations.

    Attributes:
        config_key: The configuration key that caused the error.
        config_file: Path to the config file if applicable.
    """

    kind = "ConfigError"

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class ValidationError(SwitchyardError):
    """Error from input validation.

    Attributes:
        field: The field that failed validation.
        value: The invalid value.
    """

    kind = "ValidationError"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value

    def __str__(self) -> str:
        base = self.message
        if self.field:
            base = f"{base} (field: {self.field}, value: {self.value!r})"
        if self.details:
            base = f"{base} (details: {self.details})"
        return base
