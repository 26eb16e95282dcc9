"""Unit tests for switchyard.orchestration.executor module."""

import json
from pathlib import Path
import sys
from typing import Any

import httpx
import pytest

from switchyard.core.errors import ExecutionError
from switchyard.core.models import Agent, Specialization, WorkItem
from switchyard.orchestration.executor import (
    ExecutionOutcome,
    LocalProcessExecutor,
    MockExecutor,
    RemoteWorkerExecutor,
)

WORKER_URL = "http://worker.test/run"

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell")


@pytest.fixture
def agent() -> Agent:
    return Agent("agent-1", "worker-1", Specialization.BACKEND, 2)


@pytest.fixture
def item() -> WorkItem:
    return WorkItem("task-1", "Fix login", "Patch auth.py")


def _remote(handler: httpx.MockTransport) -> RemoteWorkerExecutor:
    client = httpx.AsyncClient(transport=handler)
    return RemoteWorkerExecutor(WORKER_URL, max_retries=3, client=client)


class TestExecutionOutcome:
    def test_to_dict(self) -> None:
        outcome = ExecutionOutcome(success=True, output="ok", duration_seconds=1.23456)

        assert outcome.to_dict() == {"success": True, "output": "ok", "durationSeconds": 1.235}


class TestMockExecutor:
    """Test the scripted executor."""

    async def test_success(self, agent: Agent, item: WorkItem) -> None:
        executor = MockExecutor()

        result = await executor.execute(agent, item)

        assert result.is_ok
        assert result.value.success
        assert result.value.output == "worker-1 processed Fix login"
        assert executor.executed == ["task-1"]

    async def test_scripted_failure(self, agent: Agent, item: WorkItem) -> None:
        result = await MockExecutor(failing_ids=["task-1"]).execute(agent, item)

        assert result.is_ok
        assert not result.value.success

    async def test_delay_past_timeout(self, agent: Agent, item: WorkItem) -> None:
        executor = MockExecutor(delay=1.0)

        result = await executor.execute(agent, item, timeout=0.01)

        assert result.is_err
        assert result.error.task_id == "task-1"
        assert executor.executed == []


@posix_only
class TestLocalProcessExecutor:
    """Test the shell command executor."""

    async def test_task_fields_in_environment(self, agent: Agent, item: WorkItem) -> None:
        executor = LocalProcessExecutor('echo "$SWITCHYARD_TASK_DESCRIPTION|$SWITCHYARD_AGENT_ID"')

        result = await executor.execute(agent, item)

        assert result.is_ok
        assert result.value.success
        assert result.value.output == "Patch auth.py|agent-1"

    async def test_non_zero_exit_is_unsuccessful(self, agent: Agent, item: WorkItem) -> None:
        result = await LocalProcessExecutor("echo nope; exit 3").execute(agent, item)

        assert result.is_ok
        assert not result.value.success
        assert result.value.output == "nope"

    async def test_timeout_kills_process(self, agent: Agent, item: WorkItem) -> None:
        result = await LocalProcessExecutor("exec sleep 5").execute(agent, item, timeout=0.1)

        assert result.is_err
        assert isinstance(result.error, ExecutionError)
        assert result.error.details["timeout"] == 0.1

    async def test_missing_working_dir(
        self, agent: Agent, item: WorkItem, tmp_path: Path
    ) -> None:
        executor = LocalProcessExecutor("true", working_dir=str(tmp_path / "missing"))

        result = await executor.execute(agent, item)

        assert result.is_err
        assert result.error.agent_id == "agent-1"


class TestRemoteWorkerExecutor:
    """Test the HTTP worker executor."""

    async def test_posts_agent_and_task(self, agent: Agent, item: WorkItem) -> None:
        seen: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "output": "merged"})

        result = await _remote(httpx.MockTransport(handler)).execute(agent, item)

        assert result.is_ok
        assert result.value.output == "merged"
        assert seen[0]["task"]["id"] == "task-1"
        assert seen[0]["agent"]["id"] == "agent-1"

    async def test_worker_reported_failure(self, agent: Agent, item: WorkItem) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": False, "output": "tests red"})
        )

        result = await _remote(transport).execute(agent, item)

        assert result.is_ok
        assert not result.value.success

    async def test_transport_errors_are_retried(self, agent: Agent, item: WorkItem) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"success": True})

        result = await _remote(httpx.MockTransport(handler)).execute(agent, item)

        assert result.is_ok
        assert calls == 3

    async def test_retries_exhausted(self, agent: Agent, item: WorkItem) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("refused", request=request)

        result = await _remote(httpx.MockTransport(handler)).execute(agent, item)

        assert result.is_err
        assert calls == 3

    async def test_http_error_is_not_retried(self, agent: Agent, item: WorkItem) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        result = await _remote(httpx.MockTransport(handler)).execute(agent, item)

        assert result.is_err
        assert calls == 1

    @pytest.mark.parametrize(
        "body",
        [{"text": "not json"}, {"json": ["a", "list"]}],
    )
    async def test_malformed_body(
        self, agent: Agent, item: WorkItem, body: dict[str, Any]
    ) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, **body))

        result = await _remote(transport).execute(agent, item)

        assert result.is_err
