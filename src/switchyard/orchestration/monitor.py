"""Heartbeat monitoring for registered agents.

Agents report liveness with heartbeats. A RUNNING agent that has been
silent for more than twice the heartbeat frequency is marked DISCONNECTED.
Each agent keeps an in-memory operation log (heartbeats, completions,
errors, disconnections) for `switchyard agent status`.

Usage:
    monitor = AgentMonitor(registry, heartbeat_frequency=5.0)
    await monitor.heartbeat(agent.id)
    monitor.start()
    ...
    await monitor.stop()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
import time
from typing import Any

from switchyard.core.models import Agent, AgentStatus
from switchyard.observability.logging import get_logger
from switchyard.orchestration.registry import AgentRegistry

log = get_logger(__name__)


class OperationType(StrEnum):
    HEARTBEAT = "HEARTBEAT"
    COMPLETION = "COMPLETION"
    DISCONNECTION = "DISCONNECTION"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class AgentOperation:
    """One entry in an agent's operation log."""

    timestamp: float
    type: OperationType
    details: dict[str, Any] = field(default_factory=dict)


class AgentMonitor:
    """Tracks heartbeats and flips agent status accordingly."""

    def __init__(
        self,
        registry: AgentRegistry,
        heartbeat_frequency: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._heartbeat_frequency = heartbeat_frequency
        self._clock = clock

        self._last_heartbeat: dict[str, float] = {}
        self._operations: dict[str, list[AgentOperation]] = {}

        self._timer_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def _record(self, agent_id: str, op_type: OperationType, **details: Any) -> None:
        self._operations.setdefault(agent_id, []).append(
            AgentOperation(timestamp=self._clock(), type=op_type, details=details)
        )

    def operations(self, agent_id: str) -> list[AgentOperation]:
        return list(self._operations.get(agent_id, ()))

    def last_heartbeat(self, agent_id: str) -> float | None:
        return self._last_heartbeat.get(agent_id)

    async def heartbeat(self, agent_id: str) -> Agent:
        """Record a heartbeat and mark the agent RUNNING.

        Raises:
            NotFoundError: If no agent has that id.
        """
        agent = await self._registry.set_status(agent_id, AgentStatus.RUNNING)
        self._last_heartbeat[agent_id] = self._clock()
        self._record(agent_id, OperationType.HEARTBEAT)

        log.debug("monitor.heartbeat.received", agent_id=agent_id)
        return agent

    async def record_completion(
        self,
        agent_id: str,
        success: bool,
        message: str | None = None,
        final: bool = False,
    ) -> Agent:
        """Log a finished unit of work.

        Args:
            agent_id: Agent that did the work.
            success: Whether the work succeeded.
            message: Optional summary for the operation log.
            final: The agent is done for good; mark it COMPLETED or FAILED.
                Otherwise its status is left as is.

        Raises:
            NotFoundError: If no agent has that id.
        """
        if final:
            status = AgentStatus.COMPLETED if success else AgentStatus.FAILED
            agent = await self._registry.set_status(agent_id, status)
        else:
            agent = self._registry.get(agent_id)
        self._record(agent_id, OperationType.COMPLETION, success=success, message=message)
        return agent

    async def record_error(self, agent_id: str, error: str) -> Agent:
        """Mark the agent FAILED.

        Raises:
            NotFoundError: If no agent has that id.
        """
        agent = await self._registry.set_status(agent_id, AgentStatus.FAILED)
        self._record(agent_id, OperationType.ERROR, error=error)

        log.warning("monitor.agent.errored", agent_id=agent_id, error=error)
        return agent

    async def check(self) -> list[str]:
        """Disconnect RUNNING agents whose heartbeat is overdue.

        An agent with no recorded heartbeat is timed from the first check
        that sees it, so a restart does not disconnect everyone at once.

        Returns:
            Ids of agents marked DISCONNECTED.
        """
        now = self._clock()
        timeout = self._heartbeat_frequency * 2
        disconnected: list[str] = []

        async with self._registry.transaction() as txn:
            for agent in txn.agents:
                if agent.status != AgentStatus.RUNNING:
                    continue
                last = self._last_heartbeat.setdefault(agent.id, now)
                if now - last > timeout:
                    txn.set_status(agent, AgentStatus.DISCONNECTED)
                    disconnected.append(agent.id)

        for agent_id in disconnected:
            self._record(agent_id, OperationType.DISCONNECTION, reason="Heartbeat timeout")
            log.warning(
                "monitor.agent.disconnected",
                agent_id=agent_id,
                reason="heartbeat timeout",
            )
        return disconnected

    def start(self) -> None:
        """Run check() every heartbeat_frequency seconds."""
        if self._timer_task is not None:
            return
        self._stop_event = asyncio.Event()
        self._timer_task = asyncio.create_task(self._run_periodic(self._stop_event))
        log.info("monitor.timer.started", heartbeat_frequency=self._heartbeat_frequency)

    async def stop(self) -> None:
        """Stop periodic checks, letting an in-flight check finish."""
        if self._timer_task is None or self._stop_event is None:
            return
        self._stop_event.set()
        await self._timer_task
        self._timer_task = None
        self._stop_event = None
        log.info("monitor.timer.stopped")

    async def _run_periodic(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._heartbeat_frequency)
            except TimeoutError:
                pass
            if stop_event.is_set():
                break

            try:
                await self.check()
            except Exception as e:
                log.exception("monitor.check.failed", error=str(e))


__all__ = [
    "AgentMonitor",
    "AgentOperation",
    "OperationType",
]
