"""Unit tests for switchyard.observability.logging module."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError
import pytest

from switchyard.observability.logging import (
    LoggingConfig,
    LogMode,
    bind_context,
    clear_context,
    configure_logging,
    get_current_config,
    get_logger,
    get_mode_from_env,
    is_configured,
    reset_logging,
    set_console_logging,
    unbind_context,
)


@pytest.fixture(autouse=True)
def reset_logging_state() -> Any:
    """Reset logging state and enable console output for each test."""
    reset_logging()
    set_console_logging(True)
    yield
    reset_logging()


def _prod(tmp_path: Path, level: str = "INFO") -> None:
    configure_logging(
        LoggingConfig(mode=LogMode.PROD, log_level=level, log_dir=tmp_path, enable_file_logging=False)
    )


class TestLoggingConfig:
    """Test LoggingConfig model."""

    def test_default_config(self) -> None:
        config = LoggingConfig()
        assert config.mode == LogMode.DEV
        assert config.log_level == "INFO"
        assert config.log_dir == Path.home() / ".switchyard" / "logs"
        assert config.enable_file_logging is True

    def test_config_is_frozen(self) -> None:
        config = LoggingConfig()
        with pytest.raises(ValidationError):
            config.log_level = "DEBUG"  # type: ignore[misc]

    def test_max_log_days_bounds(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(max_log_days=0)


class TestConfigureLogging:
    """Test configure_logging."""

    def test_configure_sets_current_config(self, tmp_path: Path) -> None:
        config = LoggingConfig(log_dir=tmp_path, enable_file_logging=False)
        configure_logging(config)

        assert is_configured()
        assert get_current_config() == config

    def test_env_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SWITCHYARD_LOG_MODE", "prod")
        assert get_mode_from_env() == LogMode.PROD

        monkeypatch.setenv("SWITCHYARD_LOG_MODE", "bogus")
        assert get_mode_from_env() == LogMode.DEV

    def test_file_logging_writes_to_log_dir(self, tmp_path: Path) -> None:
        configure_logging(LoggingConfig(mode=LogMode.PROD, log_dir=tmp_path))
        set_console_logging(False)

        get_logger("test").info("registry.agent.registered", agent_id="agent-1")

        content = (tmp_path / "switchyard.log").read_text()
        assert "registry.agent.registered" in content

    def test_get_logger_auto_configures(self) -> None:
        assert not is_configured()
        get_logger("test")
        assert is_configured()


class TestOutput:
    """Test rendered output."""

    def test_prod_mode_json_output(self, tmp_path: Path, capsys: Any) -> None:
        _prod(tmp_path)

        get_logger("test").info("balancer.pass.completed", moved=2)

        data = json.loads(capsys.readouterr().err.strip())
        assert data["event"] == "balancer.pass.completed"
        assert data["moved"] == 2
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_console_logging_can_be_disabled(self, tmp_path: Path, capsys: Any) -> None:
        _prod(tmp_path)
        set_console_logging(False)

        get_logger("test").info("queue.item.added")

        assert capsys.readouterr().err == ""

    def test_level_filtering(self, tmp_path: Path, capsys: Any) -> None:
        _prod(tmp_path, level="WARNING")

        log = get_logger("test")
        log.info("hidden.event")
        log.warning("shown.event")

        err = capsys.readouterr().err
        assert "hidden.event" not in err
        assert "shown.event" in err


class TestContext:
    """Test contextvar binding."""

    def test_bind_and_unbind(self, tmp_path: Path, capsys: Any) -> None:
        _prod(tmp_path)
        log = get_logger("test")

        bind_context(task_id="t1", agent_id="agent-1")
        log.info("first")
        unbind_context("task_id")
        log.info("second")
        clear_context()
        log.info("third")

        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        assert lines[0]["task_id"] == "t1"
        assert lines[0]["agent_id"] == "agent-1"
        assert "task_id" not in lines[1]
        assert lines[1]["agent_id"] == "agent-1"
        assert "agent_id" not in lines[2]


class TestMasking:
    """Sensitive values never reach the output."""

    def test_webhook_url_is_redacted(self, tmp_path: Path, capsys: Any) -> None:
        _prod(tmp_path)

        get_logger("test").info(
            "notification.sent",
            webhook_url="https://hooks.slack.com/services/T/B/secret",
        )

        err = capsys.readouterr().err
        assert "secret" not in err
        assert "<REDACTED>" in err
