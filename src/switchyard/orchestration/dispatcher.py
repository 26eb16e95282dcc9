"""Dispatcher: pulls queued work through assignment, execution and completion.

One call to run_next() does:
1. Claim the next pending item from the queue (it becomes in-progress).
2. Assign it, explicitly or by routing. On failure the item goes back to
   pending and the error propagates.
3. Record the owner on the item and heartbeat the agent.
4. Execute it with the configured executor.
5. Record the outcome on the item, in the monitor and in the metrics
   recorder, release the agent's slot, and notify.

Once assignment succeeds the slot is always released, whether the hand-off
in step 3 or execution raises. A failed hand-off puts the item back to
pending.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from switchyard.core.errors import SwitchyardError
from switchyard.core.models import TaskStatus
from switchyard.integrations.base import NotificationIntegration
from switchyard.observability.logging import bind_context, get_logger, unbind_context
from switchyard.orchestration.assignment import AssignmentEngine
from switchyard.orchestration.executor import ExecutionOutcome, TaskExecutor
from switchyard.orchestration.monitor import AgentMonitor
from switchyard.persistence.metrics import MetricsRecorder
from switchyard.persistence.queue import WorkQueue

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DispatchReport:
    """What happened to one dispatched item.

    Attributes:
        task_id: The item that ran.
        agent_id: The agent it ran on.
        status: Final queue status (completed or failed).
        outcome: Executor outcome, if the executor produced one.
        error: Executor error message, if it failed to run the task.
    """

    task_id: str
    agent_id: str
    status: TaskStatus
    outcome: ExecutionOutcome | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "agent_id": self.agent_id,
            "status": self.status.value,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "error": self.error,
        }


class Dispatcher:
    """Runs queued items one at a time."""

    def __init__(
        self,
        queue: WorkQueue,
        engine: AssignmentEngine,
        monitor: AgentMonitor,
        executor: TaskExecutor,
        notifier: NotificationIntegration | None = None,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        self._queue = queue
        self._engine = engine
        self._monitor = monitor
        self._executor = executor
        self._notifier = notifier
        self._metrics = metrics

    async def run_next(
        self,
        agent_id: str | None = None,
        timeout: float | None = None,
    ) -> DispatchReport | None:
        """Dispatch the next pending item.

        Args:
            agent_id: Run on this agent instead of routing.
            timeout: Execution timeout in seconds (executor default if None).

        Returns:
            A report, or None when nothing is pending.

        Raises:
            NotFoundError: Unknown explicit agent.
            CapacityExceededError: Explicit agent is full.
            NoAvailableAgentError: Routing found nobody.
        """
        item = await self._queue.next()
        if item is None:
            log.debug("dispatcher.queue.empty")
            return None

        try:
            agent = await self._engine.assign(item.id, agent_id)
        except SwitchyardError:
            await self._queue.update_status(item.id, TaskStatus.PENDING)
            raise

        bind_context(task_id=item.id, agent_id=agent.id)
        try:
            try:
                await self._hand_off(item.id, agent.id)
                log.info("dispatcher.task.started", title=item.title)
                result = await self._executor.execute(agent, item, timeout)
            finally:
                await self._engine.complete(agent.id, item.id)

            if result.is_ok:
                outcome = result.value
                status = TaskStatus.COMPLETED if outcome.success else TaskStatus.FAILED
                await self._queue.update_status(item.id, status, outcome.to_dict())
                await self._monitor.record_completion(
                    agent.id, outcome.success, message=outcome.output[:200]
                )
                report = DispatchReport(item.id, agent.id, status, outcome=outcome)
            else:
                error = result.error
                await self._queue.update_status(
                    item.id, TaskStatus.FAILED, {"error": error.message}
                )
                await self._monitor.record_error(agent.id, error.message)
                report = DispatchReport(item.id, agent.id, TaskStatus.FAILED, error=error.message)

            log.info("dispatcher.task.finished", status=report.status.value)
            if self._metrics is not None:
                await self._metrics.record_task(
                    report.task_id,
                    report.agent_id,
                    success=report.succeeded,
                    duration_seconds=report.outcome.duration_seconds if report.outcome else None,
                )
            await self._notify(report, item.title)
            return report
        finally:
            unbind_context("task_id", "agent_id")

    async def _hand_off(self, task_id: str, agent_id: str) -> None:
        """Record the owner and heartbeat the agent.

        On failure the item goes back to pending and the error propagates.
        The in-memory status is reset even when that save fails too.
        """
        try:
            await self._queue.assign(task_id, agent_id)
            await self._monitor.heartbeat(agent_id)
        except SwitchyardError:
            try:
                await self._queue.update_status(task_id, TaskStatus.PENDING)
            except SwitchyardError as e:
                log.error("dispatcher.requeue.failed", task_id=task_id, error=str(e))
            raise

    async def _notify(self, report: DispatchReport, title: str) -> None:
        if self._notifier is None:
            return
        verb = "completed" if report.succeeded else "failed"
        await self._notifier.send_message(
            f"Task '{title}' {verb} on agent {report.agent_id}",
            task_id=report.task_id,
            agent_id=report.agent_id,
            status=report.status.value,
        )


__all__ = [
    "DispatchReport",
    "Dispatcher",
]
