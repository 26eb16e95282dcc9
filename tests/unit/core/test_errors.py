"""Unit tests for switchyard.core.errors module."""

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


class TestSwitchyardError:
    """Test SwitchyardError base class."""

    def test_stores_message_and_details(self) -> None:
        """SwitchyardError keeps message and details."""
        error = SwitchyardError("boom", details={"key": "value"})
        assert error.message == "boom"
        assert error.details == {"key": "value"}

    def test_default_empty_details(self) -> None:
        error = SwitchyardError("boom")
        assert error.details == {}
        assert str(error) == "boom"

    def test_str_includes_details(self) -> None:
        error = SwitchyardError("boom", details={"key": "value"})
        assert "boom" in str(error)
        assert "key" in str(error)


class TestErrorKinds:
    """Each error exposes the kind the CLI shows as the panel title."""

    def test_not_found(self) -> None:
        """NotFoundError names the entity and id."""
        error = NotFoundError("agent", "agent-123")
        assert error.kind == "NotFound"
        assert error.entity == "agent"
        assert error.identifier == "agent-123"
        assert error.message == "Agent with ID agent-123 not found"
        assert isinstance(error, SwitchyardError)

    def test_capacity_exceeded(self) -> None:
        error = CapacityExceededError("agent-1", capacity=3, current_load=3)
        assert error.kind == "CapacityExceeded"
        assert error.agent_id == "agent-1"
        assert error.capacity == 3
        assert error.current_load == 3
        assert "agent-1" in error.message

    def test_no_available_agent(self) -> None:
        error = NoAvailableAgentError("task-9", "database")
        assert error.kind == "NoAvailableAgent"
        assert error.task_id == "task-9"
        assert error.specialization == "database"

    def test_storage_error_is_io_kind(self) -> None:
        error = StorageError("disk full", key="agents", operation="save")
        assert error.kind == "IOError"
        assert error.key == "agents"
        assert error.operation == "save"

    def test_config_and_validation(self) -> None:
        assert ConfigError("bad", config_file="/tmp/c.yaml").config_file == "/tmp/c.yaml"
        error = ValidationError("bad capacity", field="capacity", value=0)
        assert error.field == "capacity"
        assert error.value == 0


class TestExecutionError:
    """Test ExecutionError.from_exception."""

    def test_from_exception_wraps_cause(self) -> None:
        """The original exception is kept as __cause__ and named in details."""
        original = TimeoutError("took too long")
        error = ExecutionError.from_exception(original, task_id="t1", agent_id="a1")

        assert error.task_id == "t1"
        assert error.agent_id == "a1"
        assert error.__cause__ is original
        assert error.details["original_exception"] == "TimeoutError"
        assert "took too long" in error.message
