"""Unit tests for switchyard.persistence.metrics module."""

from unittest.mock import AsyncMock

import pytest

from switchyard.core.errors import StorageError
from switchyard.persistence.metrics import (
    DURATION_METRIC,
    METRICS_KEY,
    SUCCESS_METRIC,
    MetricsRecorder,
    PerformanceMetric,
)
from switchyard.persistence.storage import MemoryStorage


@pytest.fixture
async def metrics(storage: MemoryStorage) -> MetricsRecorder:
    recorder = MetricsRecorder(storage)
    await recorder.initialize()
    return recorder


class TestRecording:
    """Test adding samples."""

    async def test_record_task_persists_samples(
        self, metrics: MetricsRecorder, storage: MemoryStorage
    ) -> None:
        await metrics.record_task("t1", "agent-1", success=True, duration_seconds=2.5)

        stored = await storage.load(METRICS_KEY)
        assert [entry["name"] for entry in stored] == [SUCCESS_METRIC, DURATION_METRIC]
        assert stored[0]["agentId"] == "agent-1"
        assert stored[0]["taskId"] == "t1"
        assert stored[1]["value"] == 2.5

    async def test_record_without_duration(self, metrics: MetricsRecorder) -> None:
        await metrics.record_task("t1", "agent-1", success=False)

        assert [m.name for m in metrics.metrics()] == [SUCCESS_METRIC]

    async def test_reload(self, storage: MemoryStorage) -> None:
        first = MetricsRecorder(storage)
        await first.record_task("t1", "agent-1", success=True, duration_seconds=1.0)

        second = MetricsRecorder(storage)
        await second.initialize()

        assert second.metrics() == first.metrics()

    async def test_malformed_data_starts_empty(self) -> None:
        recorder = MetricsRecorder(MemoryStorage({METRICS_KEY: [{"value": 1}]}))

        await recorder.initialize()

        assert recorder.metrics() == []

    async def test_trims_to_newest_entries(self, storage: MemoryStorage) -> None:
        recorder = MetricsRecorder(storage, max_entries=3)

        for i in range(5):
            await recorder.add(PerformanceMetric("queue_depth", float(i), timestamp=i))

        assert [m.value for m in recorder.metrics()] == [2.0, 3.0, 4.0]

    def test_rejects_non_positive_limit(self, storage: MemoryStorage) -> None:
        with pytest.raises(ValueError):
            MetricsRecorder(storage, max_entries=0)

    async def test_failed_save_keeps_sample(self, storage: MemoryStorage) -> None:
        recorder = MetricsRecorder(storage)
        storage.save = AsyncMock(  # type: ignore[method-assign]
            side_effect=StorageError("disk full", key=METRICS_KEY, operation="save")
        )

        await recorder.record_task("t1", "agent-1", success=True)

        assert len(recorder.metrics()) == 1
        assert recorder.last_persist_error is not None


class TestQueries:
    """Test filters and aggregates."""

    @pytest.fixture
    async def populated(self, metrics: MetricsRecorder) -> MetricsRecorder:
        await metrics.add(
            PerformanceMetric(SUCCESS_METRIC, 1.0, timestamp=1000, agent_id="a"),
            PerformanceMetric(DURATION_METRIC, 2.0, timestamp=1000, agent_id="a"),
            PerformanceMetric(SUCCESS_METRIC, 0.0, timestamp=2000, agent_id="b"),
            PerformanceMetric(DURATION_METRIC, 6.0, timestamp=2000, agent_id="b"),
            PerformanceMetric(SUCCESS_METRIC, 1.0, timestamp=3000, agent_id="a"),
        )
        return metrics

    async def test_filters(self, populated: MetricsRecorder) -> None:
        assert len(populated.metrics(SUCCESS_METRIC)) == 3
        assert len(populated.metrics(agent_id="b")) == 2
        assert len(populated.metrics(start=2000, end=2000)) == 2

    async def test_average(self, populated: MetricsRecorder) -> None:
        assert populated.average(DURATION_METRIC) == 4.0
        assert populated.average(DURATION_METRIC, agent_id="a") == 2.0
        assert populated.average("cpu_usage") is None

    async def test_success_rate(self, populated: MetricsRecorder) -> None:
        assert populated.success_rate() == pytest.approx(200 / 3)
        assert populated.success_rate(start=2500) == 100.0
        assert populated.success_rate(agent_id="b") == 0.0

    def test_success_rate_without_samples(self, storage: MemoryStorage) -> None:
        """No completed tasks counts as fully successful."""
        assert MetricsRecorder(storage).success_rate() == 100.0

    async def test_summary_per_agent(self, populated: MetricsRecorder) -> None:
        summary = populated.summary()

        assert list(summary) == ["a", "b"]
        assert summary["a"] == {"tasks": 2, "success_rate": 100.0, "average_duration": 2.0}
        assert summary["b"]["success_rate"] == 0.0
