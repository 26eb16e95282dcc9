"""Persistence module for Switchyard.

- Storage protocol with JSON file and in-memory backends
- WorkQueue: the task store agents pull work from
- MetricsRecorder: per-task performance samples
"""

from switchyard.persistence.metrics import MetricsRecorder, PerformanceMetric
from switchyard.persistence.queue import QUEUE_KEY, TaskStore, WorkQueue
from switchyard.persistence.storage import JsonFileStorage, MemoryStorage, Storage

__all__ = [
    "JsonFileStorage",
    "MemoryStorage",
    "MetricsRecorder",
    "PerformanceMetric",
    "QUEUE_KEY",
    "Storage",
    "TaskStore",
    "WorkQueue",
]
