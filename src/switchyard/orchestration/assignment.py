"""Assignment Engine: routes tasks to agents.

Routing rules for auto-assignment:
1. Classify the task (description plus extracted file names).
2. Candidates are RUNNING agents with spare capacity whose specialization
   equals the task's or is GENERAL.
3. Exact specialization matches beat generalists even when a generalist is
   less loaded; within each group the lowest load ratio wins, then
   registration order.
4. With no candidates, any RUNNING agent with spare capacity is used,
   lowest load ratio first.
5. Otherwise NoAvailableAgentError.

Skew created by rule 3 is left for the LoadBalancer to correct.

Usage:
    engine = AssignmentEngine(registry, queue)
    agent = await engine.assign(task_id)                 # auto
    agent = await engine.assign(task_id, "agent-1a2b")   # explicit
    await engine.complete(agent.id, task_id)
"""

from __future__ import annotations

from collections.abc import Sequence
import dataclasses

from switchyard.core.errors import (
    CapacityExceededError,
    NoAvailableAgentError,
    NotFoundError,
)
from switchyard.core.models import Agent, AgentStatus, Specialization, WorkItem
from switchyard.observability.logging import get_logger
from switchyard.orchestration.classifier import (
    RegexFileExtractor,
    SpecializationClassifier,
    TaskFeatureExtractor,
)
from switchyard.orchestration.registry import AgentRegistry
from switchyard.persistence.queue import TaskStore

log = get_logger(__name__)


def select_agent(agents: Sequence[Agent], specialization: Specialization) -> Agent | None:
    """Pick the best agent for a specialization without mutating anything.

    Args:
        agents: Agents in registration order.
        specialization: The task's derived specialization.

    Returns:
        The chosen agent, or None if no RUNNING agent has spare capacity.
    """
    available = [
        agent
        for agent in agents
        if agent.status == AgentStatus.RUNNING and agent.has_spare_capacity
    ]

    matching = [
        agent
        for agent in available
        if agent.specialization in (specialization, Specialization.GENERAL)
    ]
    if matching:
        # sorted() is stable: equal keys keep registration order
        ranked = sorted(
            matching,
            key=lambda a: (a.specialization != specialization, a.load_ratio),
        )
        return ranked[0]

    if available:
        return sorted(available, key=lambda a: a.load_ratio)[0]

    return None


class AssignmentEngine:
    """Assigns tasks to agents and handles completion bookkeeping."""

    def __init__(
        self,
        registry: AgentRegistry,
        task_store: TaskStore,
        classifier: SpecializationClassifier | None = None,
        extractor: TaskFeatureExtractor | None = None,
    ) -> None:
        self._registry = registry
        self._task_store = task_store
        self._classifier = classifier or SpecializationClassifier()
        self._extractor = extractor or RegexFileExtractor()

    @property
    def classifier(self) -> SpecializationClassifier:
        return self._classifier

    def specialization_for(self, item: WorkItem) -> Specialization:
        return self._classifier.classify_item(item, self._extractor)

    async def _load_task(self, task_id: str) -> WorkItem:
        item = await self._task_store.load(task_id)
        if item is None:
            raise NotFoundError("task", task_id)
        return item

    async def route(self, task_id: str) -> Agent | None:
        """Return the agent auto-assignment would pick, without assigning.

        Raises:
            NotFoundError: If the task is unknown.
        """
        item = await self._load_task(task_id)
        chosen = select_agent(self._registry.list(), self.specialization_for(item))
        return dataclasses.replace(chosen) if chosen else None

    async def assign(self, task_id: str, agent_id: str | None = None) -> Agent:
        """Assign a task, explicitly or by routing.

        Args:
            task_id: Task being assigned.
            agent_id: Explicit target. When given, the task store is not
                consulted and routing rules do not apply.

        Returns:
            Copy of the chosen agent after its load was incremented.

        Raises:
            NotFoundError: Unknown agent (explicit) or task (auto).
            CapacityExceededError: Explicit target is full.
            NoAvailableAgentError: Auto-assignment found nobody.
        """
        if agent_id is not None:
            return await self._assign_explicit(task_id, agent_id)
        return await self._assign_auto(task_id)

    async def _assign_explicit(self, task_id: str, agent_id: str) -> Agent:
        async with self._registry.transaction() as txn:
            agent = txn.get(agent_id)
            if agent.current_load >= agent.capacity:
                log.warning(
                    "assignment.agent.at_capacity",
                    agent_id=agent_id,
                    task_id=task_id,
                    capacity=agent.capacity,
                )
                raise CapacityExceededError(
                    agent_id,
                    capacity=agent.capacity,
                    current_load=agent.current_load,
                )
            txn.increment(agent)
            assigned = dataclasses.replace(agent)

        log.info(
            "assignment.task.assigned",
            task_id=task_id,
            agent_id=agent_id,
            mode="explicit",
            current_load=assigned.current_load,
        )
        return assigned

    async def _assign_auto(self, task_id: str) -> Agent:
        item = await self._load_task(task_id)
        specialization = self.specialization_for(item)

        async with self._registry.transaction() as txn:
            chosen = select_agent(txn.agents, specialization)
            if chosen is None:
                log.warning(
                    "assignment.no_available_agent",
                    task_id=task_id,
                    specialization=specialization.value,
                )
                raise NoAvailableAgentError(task_id, specialization.value)
            txn.increment(chosen)
            assigned = dataclasses.replace(chosen)

        log.info(
            "assignment.task.assigned",
            task_id=task_id,
            agent_id=assigned.id,
            mode="auto",
            specialization=specialization.value,
            matched=assigned.specialization == specialization,
            current_load=assigned.current_load,
        )
        return assigned

    async def complete(self, agent_id: str, task_id: str) -> Agent:
        """Release the slot a finished task held on an agent.

        Raises:
            NotFoundError: If no agent has that id.
        """
        agent = await self._registry.decrement_load(agent_id)
        log.info(
            "assignment.task.completed",
            task_id=task_id,
            agent_id=agent_id,
            current_load=agent.current_load,
        )
        return agent


__all__ = [
    "AssignmentEngine",
    "select_agent",
]
