"""Performance metrics recorded per dispatched task.

Metrics are named numeric samples tagged with the agent and task they
describe. The dispatcher records two per task:

- ``operation_success``: 1.0 on success, 0.0 on failure
- ``task_duration``: executor wall time in seconds (only when the executor
  produced an outcome)

The full list is rewritten under the "performanceMetrics" key after every
addition and trimmed to the newest ``max_entries`` samples. Saving is best
effort: a failed save is logged and the sample stays in memory.

Usage:
    metrics = MetricsRecorder(storage)
    await metrics.initialize()

    await metrics.record_task("task-1", "agent-1", success=True, duration_seconds=2.5)
    metrics.success_rate()              # 100.0
    metrics.average("task_duration")    # 2.5
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any

from switchyard.core.errors import StorageError
from switchyard.observability.logging import get_logger
from switchyard.persistence.storage import Storage

log = get_logger(__name__)

METRICS_KEY = "performanceMetrics"
SUCCESS_METRIC = "operation_success"
DURATION_METRIC = "task_duration"
DEFAULT_MAX_ENTRIES = 1000


@dataclass(frozen=True, slots=True)
class PerformanceMetric:
    """One sample.

    Attributes:
        name: Metric name, e.g. "task_duration".
        value: Sample value.
        unit: Display unit ("s", "bool", ...).
        timestamp: Epoch milliseconds.
        agent_id: Agent the sample describes, if any.
        task_id: Task the sample describes, if any.
    """

    name: str
    value: float
    unit: str = ""
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    agent_id: str | None = None
    task_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp,
        }
        if self.agent_id is not None:
            data["agentId"] = self.agent_id
        if self.task_id is not None:
            data["taskId"] = self.task_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PerformanceMetric:
        return cls(
            name=str(data["name"]),
            value=float(data["value"]),
            unit=str(data.get("unit", "")),
            timestamp=int(data["timestamp"]),
            agent_id=data.get("agentId"),
            task_id=data.get("taskId"),
        )


class MetricsRecorder:
    """Stores performance samples and answers aggregate queries."""

    def __init__(self, storage: Storage, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            msg = f"max_entries must be positive, got {max_entries}"
            raise ValueError(msg)
        self._storage = storage
        self._max_entries = max_entries
        self._metrics: list[PerformanceMetric] = []
        self.last_persist_error: StorageError | None = None

    async def initialize(self) -> None:
        """Load samples from storage. A failed or malformed load starts empty."""
        try:
            raw = await self._storage.load(METRICS_KEY)
            self._metrics = [PerformanceMetric.from_dict(entry) for entry in raw or []]
        except (StorageError, KeyError, ValueError, TypeError) as e:
            log.error("metrics.load.failed", error=str(e))
            self._metrics = []

        log.debug("metrics.loaded", count=len(self._metrics))

    async def _save(self) -> None:
        try:
            await self._storage.save(METRICS_KEY, [m.to_dict() for m in self._metrics])
        except StorageError as e:
            self.last_persist_error = e
            log.error("metrics.persist.failed", error=str(e), samples=len(self._metrics))
            return
        self.last_persist_error = None

    async def add(self, *samples: PerformanceMetric) -> None:
        """Append samples, trim to the newest max_entries, and persist once."""
        self._metrics.extend(samples)
        overflow = len(self._metrics) - self._max_entries
        if overflow > 0:
            del self._metrics[:overflow]
        await self._save()

    async def record_task(
        self,
        task_id: str,
        agent_id: str,
        *,
        success: bool,
        duration_seconds: float | None = None,
    ) -> None:
        """Record the result of one dispatched task."""
        samples = [
            PerformanceMetric(
                SUCCESS_METRIC, 1.0 if success else 0.0, "bool",
                agent_id=agent_id, task_id=task_id,
            )
        ]
        if duration_seconds is not None:
            samples.append(
                PerformanceMetric(
                    DURATION_METRIC, duration_seconds, "s",
                    agent_id=agent_id, task_id=task_id,
                )
            )
        await self.add(*samples)

        log.debug("metrics.task.recorded", task_id=task_id, agent_id=agent_id, success=success)

    def metrics(
        self,
        name: str | None = None,
        *,
        agent_id: str | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> list[PerformanceMetric]:
        """Return samples matching every given filter, oldest first.

        Args:
            name: Metric name.
            agent_id: Agent tag.
            start: Earliest timestamp (epoch ms, inclusive).
            end: Latest timestamp (epoch ms, inclusive).
        """
        return [
            m
            for m in self._metrics
            if (name is None or m.name == name)
            and (agent_id is None or m.agent_id == agent_id)
            and (start is None or m.timestamp >= start)
            and (end is None or m.timestamp <= end)
        ]

    def average(
        self,
        name: str,
        *,
        agent_id: str | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> float | None:
        """Mean value of a metric, or None when there are no samples."""
        values = [m.value for m in self.metrics(name, agent_id=agent_id, start=start, end=end)]
        if not values:
            return None
        return sum(values) / len(values)

    def success_rate(
        self,
        *,
        agent_id: str | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> float:
        """Percentage of successful tasks. 100.0 when nothing has run."""
        rate = self.average(SUCCESS_METRIC, agent_id=agent_id, start=start, end=end)
        return 100.0 if rate is None else rate * 100

    def summary(self, *, start: int | None = None) -> dict[str | None, dict[str, Any]]:
        """Per-agent task count, success rate and average duration."""
        agent_ids = dict.fromkeys(m.agent_id for m in self.metrics(SUCCESS_METRIC, start=start))
        return {
            agent_id: {
                "tasks": len(self.metrics(SUCCESS_METRIC, agent_id=agent_id, start=start)),
                "success_rate": self.success_rate(agent_id=agent_id, start=start),
                "average_duration": self.average(DURATION_METRIC, agent_id=agent_id, start=start),
            }
            for agent_id in agent_ids
        }


__all__ = [
    "DURATION_METRIC",
    "METRICS_KEY",
    "MetricsRecorder",
    "PerformanceMetric",
    "SUCCESS_METRIC",
]
