"""Task executors: the pluggable step that actually runs a work item.

This module provides:
- TaskExecutor: protocol every executor satisfies
- MockExecutor: scripted outcomes for tests and demos
- LocalProcessExecutor: runs a shell command template per task
- RemoteWorkerExecutor: POSTs the task to an HTTP worker

Executors never raise for expected failures. Infrastructure problems
(timeouts, missing commands, unreachable workers) come back as
Result.err(ExecutionError); a task that ran and reported failure comes back
as Result.ok with success=False.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
import os
import time
from typing import Any, Protocol

import httpx
import stamina

from switchyard.core.errors import ExecutionError
from switchyard.core.models import Agent, WorkItem
from switchyard.core.types import Result
from switchyard.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30 * 60.0

RETRIABLE_EXCEPTIONS = (httpx.TransportError,)


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """What an executor observed.

    Attributes:
        success: Whether the task reported success.
        output: Captured output or worker message.
        duration_seconds: Wall time spent executing.
    """

    success: bool
    output: str = ""
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "durationSeconds": round(self.duration_seconds, 3),
        }


class TaskExecutor(Protocol):
    """Runs one work item on behalf of an agent."""

    async def execute(
        self,
        agent: Agent,
        item: WorkItem,
        timeout: float | None = None,
    ) -> Result[ExecutionOutcome, ExecutionError]:
        ...


class MockExecutor:
    """Deterministic executor.

    Succeeds for every task except the ids in ``failing_ids``. An optional
    delay simulates work so timeouts and concurrency can be exercised.
    """

    def __init__(
        self,
        failing_ids: Iterable[str] = (),
        delay: float = 0.0,
    ) -> None:
        self._failing_ids = frozenset(failing_ids)
        self._delay = delay
        self.executed: list[str] = []

    async def execute(
        self,
        agent: Agent,
        item: WorkItem,
        timeout: float | None = None,
    ) -> Result[ExecutionOutcome, ExecutionError]:
        start = time.monotonic()
        if self._delay:
            try:
                await asyncio.wait_for(asyncio.sleep(self._delay), timeout=timeout)
            except TimeoutError:
                return Result.err(
                    ExecutionError(
                        f"Task {item.id} timed out after {timeout}s",
                        task_id=item.id,
                        agent_id=agent.id,
                        details={"timeout": timeout},
                    )
                )

        self.executed.append(item.id)
        success = item.id not in self._failing_ids
        output = f"{agent.name} processed {item.title}" if success else "scripted failure"
        return Result.ok(
            ExecutionOutcome(
                success=success,
                output=output,
                duration_seconds=time.monotonic() - start,
            )
        )


class LocalProcessExecutor:
    """Run a shell command per task.

    The command template is passed to the shell unchanged; task fields are
    exposed as SWITCHYARD_TASK_ID, SWITCHYARD_TASK_TITLE,
    SWITCHYARD_TASK_DESCRIPTION and SWITCHYARD_AGENT_ID.
    """

    def __init__(
        self,
        command: str,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        working_dir: str | None = None,
    ) -> None:
        self._command = command
        self._default_timeout = default_timeout
        self._working_dir = working_dir

    def _environment(self, agent: Agent, item: WorkItem) -> dict[str, str]:
        env = dict(os.environ)
        env.update(
            {
                "SWITCHYARD_TASK_ID": item.id,
                "SWITCHYARD_TASK_TITLE": item.title,
                "SWITCHYARD_TASK_DESCRIPTION": item.description,
                "SWITCHYARD_AGENT_ID": agent.id,
            }
        )
        return env

    async def execute(
        self,
        agent: Agent,
        item: WorkItem,
        timeout: float | None = None,
    ) -> Result[ExecutionOutcome, ExecutionError]:
        limit = timeout or self._default_timeout
        start = time.monotonic()

        try:
            process = await asyncio.create_subprocess_shell(
                self._command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self._working_dir,
                env=self._environment(agent, item),
            )
        except OSError as e:
            log.warning("executor.process.spawn_failed", task_id=item.id, error=str(e))
            return Result.err(ExecutionError.from_exception(e, task_id=item.id, agent_id=agent.id))

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=limit)
        except TimeoutError:
            process.kill()
            await process.wait()
            log.warning("executor.process.timed_out", task_id=item.id, timeout=limit)
            return Result.err(
                ExecutionError(
                    f"Task {item.id} timed out after {limit}s",
                    task_id=item.id,
                    agent_id=agent.id,
                    details={"timeout": limit},
                )
            )

        output = stdout.decode("utf-8", errors="replace").strip()
        return_code = process.returncode or 0
        log.debug("executor.process.finished", task_id=item.id, return_code=return_code)
        return Result.ok(
            ExecutionOutcome(
                success=return_code == 0,
                output=output,
                duration_seconds=time.monotonic() - start,
            )
        )


class RemoteWorkerExecutor:
    """Send tasks to an HTTP worker.

    The worker receives a JSON body with the task and agent and answers
    ``{"success": bool, "output": str}``. Transport errors are retried with
    exponential backoff; HTTP error statuses are not.
    """

    def __init__(
        self,
        worker_url: str,
        max_retries: int = 3,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._worker_url = worker_url
        self._max_retries = max_retries
        self._default_timeout = default_timeout
        self._client = client

    async def _post(self, payload: dict[str, Any], timeout: float) -> httpx.Response:
        if self._client is not None:
            response = await self._client.post(self._worker_url, json=payload, timeout=timeout)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._worker_url, json=payload, timeout=timeout)
        response.raise_for_status()
        return response

    async def execute(
        self,
        agent: Agent,
        item: WorkItem,
        timeout: float | None = None,
    ) -> Result[ExecutionOutcome, ExecutionError]:
        limit = timeout or self._default_timeout
        payload = {"agent": agent.to_dict(), "task": item.to_dict()}
        start = time.monotonic()

        @stamina.retry(
            on=RETRIABLE_EXCEPTIONS,
            attempts=self._max_retries,
            wait_initial=1.0,
            wait_max=10.0,
            wait_jitter=1.0,
        )
        async def _with_retry() -> httpx.Response:
            return await self._post(payload, limit)

        try:
            response = await _with_retry()
        except RETRIABLE_EXCEPTIONS as e:
            log.warning(
                "executor.remote.failed.retries_exhausted",
                task_id=item.id,
                error=str(e),
                max_retries=self._max_retries,
            )
            return Result.err(ExecutionError.from_exception(e, task_id=item.id, agent_id=agent.id))
        except httpx.HTTPStatusError as e:
            log.warning(
                "executor.remote.failed.http_status",
                task_id=item.id,
                status_code=e.response.status_code,
            )
            return Result.err(ExecutionError.from_exception(e, task_id=item.id, agent_id=agent.id))

        try:
            body = response.json()
        except ValueError as e:
            return Result.err(ExecutionError.from_exception(e, task_id=item.id, agent_id=agent.id))
        if not isinstance(body, dict):
            return Result.err(
                ExecutionError(
                    f"Worker returned a non-object body for task {item.id}",
                    task_id=item.id,
                    agent_id=agent.id,
                )
            )

        return Result.ok(
            ExecutionOutcome(
                success=bool(body.get("success", False)),
                output=str(body.get("output", "")),
                duration_seconds=time.monotonic() - start,
            )
        )


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "ExecutionOutcome",
    "LocalProcessExecutor",
    "MockExecutor",
    "RemoteWorkerExecutor",
    "TaskExecutor",
]
