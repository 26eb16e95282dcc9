"""Domain records shared by the registry, queue and routing engine.

Records serialize to camelCase JSON objects so data directories written by
earlier tooling stay readable.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import time
from typing import Any
from uuid import uuid4

from switchyard.core.errors import ValidationError


class AgentStatus(StrEnum):
    """Lifecycle state of an agent. Independent of its load."""

    STARTING = "STARTING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    DISCONNECTED = "DISCONNECTED"


class Specialization(StrEnum):
    """Routing categories. Declaration order is the classifier tie-break order."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    DATABASE = "database"
    DEVOPS = "devops"
    GENERAL = "general"


class TaskPriority(StrEnum):
    """Work item priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def sort_order(self) -> int:
        """Return numeric sort order (lower = served first)."""
        orders = {TaskPriority.HIGH: 0, TaskPriority.MEDIUM: 1, TaskPriority.LOW: 2}
        return orders[self]


class TaskStatus(StrEnum):
    """Work item lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class Agent:
    """A worker slot that tasks are routed to.

    Attributes:
        id: Opaque unique identifier, generated at registration.
        name: Display label.
        specialization: Routing category.
        capacity: Maximum concurrent task slots (>= 1).
        status: Lifecycle state.
        current_load: Tasks currently assigned. May exceed capacity until
            the balancer corrects it, but never goes below zero.
    """

    id: str
    name: str
    specialization: Specialization
    capacity: int
    status: AgentStatus = AgentStatus.STARTING
    current_load: int = 0

    @classmethod
    def create(
        cls,
        name: str,
        specialization: Specialization | str,
        capacity: int,
    ) -> "Agent":
        """Build a new STARTING agent with a fresh id.

        Raises:
            ValidationError: If capacity < 1, the name is blank, or the
                specialization is unknown.
        """
        if not name or not name.strip():
            raise ValidationError("Agent name must not be empty", field="name", value=name)
        if capacity < 1:
            raise ValidationError(
                "Agent capacity must be a positive integer", field="capacity", value=capacity
            )
        return cls(
            id=f"agent-{uuid4().hex[:12]}",
            name=name.strip(),
            specialization=parse_specialization(specialization),
            capacity=capacity,
        )

    @property
    def load_ratio(self) -> float:
        """current_load / capacity, for comparisons only."""
        return self.current_load / self.capacity

    @property
    def has_spare_capacity(self) -> bool:
        return self.current_load < self.capacity

    @property
    def is_overloaded(self) -> bool:
        return self.current_load > self.capacity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "specialization": self.specialization.value,
            "capacity": self.capacity,
            "currentLoad": self.current_load,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Agent":
        """Rebuild an agent from its stored form.

        Raises:
            KeyError, ValueError: On malformed records, including a capacity
                below 1 or a negative load.
        """
        capacity = int(data["capacity"])
        current_load = int(data.get("currentLoad", 0))
        if capacity < 1:
            msg = f"Agent {data['id']} has invalid capacity {capacity}"
            raise ValueError(msg)
        if current_load < 0:
            msg = f"Agent {data['id']} has negative load {current_load}"
            raise ValueError(msg)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            specialization=Specialization(data["specialization"]),
            capacity=capacity,
            status=AgentStatus(data.get("status", AgentStatus.STARTING)),
            current_load=current_load,
        )


@dataclass(slots=True)
class WorkItem:
    """A queued task.

    Timestamps are epoch milliseconds.
    """

    id: str
    title: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    created_at: int = field(default_factory=_now_ms)
    assigned_to: str | None = None
    started_at: int | None = None
    completed_at: int | None = None
    result: Any | None = None

    @classmethod
    def create(
        cls,
        title: str,
        description: str = "",
        priority: TaskPriority | str = TaskPriority.MEDIUM,
    ) -> "WorkItem":
        if not title or not title.strip():
            raise ValidationError("Task title must not be empty", field="title", value=title)
        return cls(
            id=uuid4().hex[:12],
            title=title.strip(),
            description=description or title.strip(),
            priority=parse_priority(priority),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "createdAt": self.created_at,
        }
        optional = {
            "assignedTo": self.assigned_to,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "result": self.result,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkItem":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            priority=TaskPriority(data.get("priority", TaskPriority.MEDIUM)),
            status=TaskStatus(data.get("status", TaskStatus.PENDING)),
            created_at=int(data.get("createdAt", 0)),
            assigned_to=data.get("assignedTo"),
            started_at=data.get("startedAt"),
            completed_at=data.get("completedAt"),
            result=data.get("result"),
        )


def _parse_enum[E: StrEnum](enum_cls: type[E], value: E | str, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    normalized = str(value).strip()
    for member in enum_cls:
        if member.value.lower() == normalized.lower():
            return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValidationError(
        f"Invalid {field_name} {value!r}; expected one of: {allowed}",
        field=field_name,
        value=value,
    )


def parse_specialization(value: Specialization | str) -> Specialization:
    """Parse a specialization name case-insensitively.

    Raises:
        ValidationError: For unknown names.
    """
    return _parse_enum(Specialization, value, "specialization")


def parse_agent_status(value: AgentStatus | str) -> AgentStatus:
    return _parse_enum(AgentStatus, value, "status")


def parse_priority(value: TaskPriority | str) -> TaskPriority:
    return _parse_enum(TaskPriority, value, "priority")


def parse_task_status(value: TaskStatus | str) -> TaskStatus:
    return _parse_enum(TaskStatus, value, "status")
