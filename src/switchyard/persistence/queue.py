"""Work queue backed by key-value storage.

The queue is the Task Store the assignment engine reads from. The whole
item list is rewritten under the "workQueue" key after every mutation.

Usage:
    queue = WorkQueue(storage)
    await queue.initialize()

    item = await queue.add("Fix login", "Fix auth.py token refresh", "high")
    nxt = await queue.next()        # marks it in-progress
    await queue.update_status(nxt.id, TaskStatus.COMPLETED, result={"ok": True})
"""

from __future__ import annotations

import dataclasses
import time
from typing import Any, Protocol

from switchyard.core.errors import NotFoundError, StorageError
from switchyard.core.models import (
    TaskPriority,
    TaskStatus,
    WorkItem,
    parse_task_status,
)
from switchyard.observability.logging import get_logger
from switchyard.persistence.storage import Storage

log = get_logger(__name__)

QUEUE_KEY = "workQueue"


class TaskStore(Protocol):
    """Read-only task lookup used by the assignment engine."""

    async def load(self, task_id: str) -> WorkItem | None:
        """Return the task or None if unknown."""
        ...


class WorkQueue:
    """Priority work queue persisted through a Storage backend."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._items: list[WorkItem] = []

    async def initialize(self) -> None:
        """Load items from storage. A failed or malformed load starts empty."""
        try:
            raw = await self._storage.load(QUEUE_KEY)
            self._items = [WorkItem.from_dict(entry) for entry in raw or []]
        except (StorageError, KeyError, ValueError, TypeError) as e:
            log.error("queue.load.failed", error=str(e))
            self._items = []

        log.debug("queue.loaded", count=len(self._items))

    async def _save(self) -> None:
        await self._storage.save(QUEUE_KEY, [item.to_dict() for item in self._items])

    def _find(self, task_id: str) -> WorkItem:
        for item in self._items:
            if item.id == task_id:
                return item
        raise NotFoundError("task", task_id)

    async def add(
        self,
        title: str,
        description: str = "",
        priority: TaskPriority | str = TaskPriority.MEDIUM,
    ) -> WorkItem:
        """Append a new pending item and persist the queue."""
        item = WorkItem.create(title, description, priority)
        self._items.append(item)
        await self._save()

        log.info("queue.item.added", task_id=item.id, priority=item.priority.value)
        return dataclasses.replace(item)

    async def load(self, task_id: str) -> WorkItem | None:
        try:
            return dataclasses.replace(self._find(task_id))
        except NotFoundError:
            return None

    def get(self, task_id: str) -> WorkItem:
        """Return a copy of the item.

        Raises:
            NotFoundError: If no item has that id.
        """
        return dataclasses.replace(self._find(task_id))

    def list(self, status: TaskStatus | str | None = None) -> list[WorkItem]:
        """Return copies of all items, optionally filtered by status."""
        wanted = parse_task_status(status) if status is not None else None
        return [
            dataclasses.replace(item)
            for item in self._items
            if wanted is None or item.status == wanted
        ]

    async def next(self) -> WorkItem | None:
        """Claim the next pending item: highest priority first, then oldest.

        The claimed item is marked in-progress before it is returned.
        """
        pending = [item for item in self._items if item.status == TaskStatus.PENDING]
        if not pending:
            return None

        item = min(pending, key=lambda i: (i.priority.sort_order, i.created_at))
        item.status = TaskStatus.IN_PROGRESS
        item.started_at = int(time.time() * 1000)
        await self._save()

        log.info("queue.item.claimed", task_id=item.id)
        return dataclasses.replace(item)

    async def update_status(
        self,
        task_id: str,
        status: TaskStatus | str,
        result: Any | None = None,
    ) -> WorkItem:
        """Set an item's status; terminal states stamp completion time and result.

        Raises:
            NotFoundError: If no item has that id.
        """
        item = self._find(task_id)
        item.status = parse_task_status(status)
        if item.status.is_terminal:
            item.completed_at = int(time.time() * 1000)
            item.result = result
        await self._save()

        log.info("queue.item.status_updated", task_id=task_id, status=item.status.value)
        return dataclasses.replace(item)

    async def assign(self, task_id: str, agent_id: str) -> WorkItem:
        """Record which agent owns an item.

        Raises:
            NotFoundError: If no item has that id.
        """
        item = self._find(task_id)
        item.assigned_to = agent_id
        await self._save()
        return dataclasses.replace(item)

    async def remove(self, task_id: str) -> WorkItem:
        """Delete an item.

        Raises:
            NotFoundError: If no item has that id.
        """
        item = self._find(task_id)
        self._items.remove(item)
        await self._save()

        log.info("queue.item.removed", task_id=task_id)
        return item


__all__ = [
    "QUEUE_KEY",
    "TaskStore",
    "WorkQueue",
]
