"""Agent Registry: the single source of truth for agent records.

This module provides:
- AgentRegistry: in-memory agent records persisted under the "agents" key
- RegistryTransaction: mutation handle valid while the registry lock is held

Every mutation runs inside ``registry.transaction()``, which holds one
asyncio.Lock for the whole read-decide-write sequence and rewrites the full
agent set once on exit if anything changed. The assignment engine, the
load balancer and the heartbeat monitor all go through it, so a rebalance
pass never interleaves with an assignment.

Persistence is best effort: a failed save is logged and recorded on
``last_persist_error`` but the in-memory mutation stands.

Usage:
    registry = AgentRegistry(storage)
    await registry.initialize()

    agent = await registry.register("ui-1", Specialization.FRONTEND, capacity=3)
    await registry.set_status(agent.id, AgentStatus.RUNNING)

    async with registry.transaction() as txn:
        live = txn.get(agent.id)
        txn.increment(live)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import dataclasses

from switchyard.core.errors import NotFoundError, StorageError
from switchyard.core.models import (
    Agent,
    AgentStatus,
    Specialization,
    parse_agent_status,
)
from switchyard.observability.logging import get_logger
from switchyard.persistence.storage import Storage

log = get_logger(__name__)

AGENTS_KEY = "agents"


class RegistryTransaction:
    """Mutation handle over the live agent list.

    Only valid inside ``AgentRegistry.transaction()``. Methods operate on
    live records; callers must not keep references past the block.
    """

    def __init__(self, agents: list[Agent]) -> None:
        self._agents = agents
        self.dirty = False

    @property
    def agents(self) -> list[Agent]:
        """Live records in registration order."""
        return self._agents

    def get(self, agent_id: str) -> Agent:
        for agent in self._agents:
            if agent.id == agent_id:
                return agent
        raise NotFoundError("agent", agent_id)

    def add(self, agent: Agent) -> None:
        self._agents.append(agent)
        self.dirty = True

    def set_status(self, agent: Agent, status: AgentStatus) -> None:
        if agent.status != status:
            agent.status = status
            self.dirty = True

    def increment(self, agent: Agent) -> None:
        agent.current_load += 1
        self.dirty = True

    def decrement(self, agent: Agent) -> bool:
        """Lower the load by one, clamped at zero. Returns False if already zero."""
        if agent.current_load <= 0:
            return False
        agent.current_load -= 1
        self.dirty = True
        return True

    def transfer(self, source: Agent, target: Agent) -> None:
        """Move one unit of load from source to target."""
        if source.current_load <= 0:
            msg = f"Cannot transfer load from idle agent {source.id}"
            raise ValueError(msg)
        source.current_load -= 1
        target.current_load += 1
        self.dirty = True


class AgentRegistry:
    """Registry of agents with serialized, persisted mutations."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._agents: list[Agent] = []
        self._lock = asyncio.Lock()
        self.last_persist_error: StorageError | None = None

    async def initialize(self) -> None:
        """Reload agents from storage.

        Unreadable or malformed data yields an empty registry so the system
        can start cold.
        """
        try:
            raw = await self._storage.load(AGENTS_KEY)
            agents = [Agent.from_dict(entry) for entry in raw or []]
        except (StorageError, KeyError, ValueError, TypeError) as e:
            log.error("registry.load.failed", error=str(e))
            agents = []

        async with self._lock:
            self._agents = agents

        log.info("registry.loaded", count=len(agents))

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    @property
    def is_durable(self) -> bool:
        """False when the most recent save failed."""
        return self.last_persist_error is None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[RegistryTransaction]:
        """Hold the registry lock; persist once on clean exit if anything changed."""
        async with self._lock:
            txn = RegistryTransaction(self._agents)
            yield txn
            if txn.dirty:
                await self._persist()

    async def _persist(self) -> None:
        snapshot = [agent.to_dict() for agent in self._agents]
        try:
            await self._storage.save(AGENTS_KEY, snapshot)
        except StorageError as e:
            self.last_persist_error = e
            log.error(
                "registry.persist.failed",
                error=str(e),
                agents=len(snapshot),
                durable=False,
            )
            return

        self.last_persist_error = None

    def get(self, agent_id: str) -> Agent:
        """Return a copy of the agent.

        Raises:
            NotFoundError: If no agent has that id.
        """
        for agent in self._agents:
            if agent.id == agent_id:
                return dataclasses.replace(agent)
        raise NotFoundError("agent", agent_id)

    def list(self, status: AgentStatus | str | None = None) -> list[Agent]:
        """Return copies of all agents, optionally filtered by status."""
        wanted = parse_agent_status(status) if status is not None else None
        return [
            dataclasses.replace(agent)
            for agent in self._agents
            if wanted is None or agent.status == wanted
        ]

    async def register(
        self,
        name: str,
        specialization: Specialization | str,
        capacity: int,
    ) -> Agent:
        """Create a STARTING agent with zero load.

        Raises:
            ValidationError: On a blank name, unknown specialization or
                capacity < 1.
        """
        agent = Agent.create(name, specialization, capacity)
        async with self.transaction() as txn:
            txn.add(agent)

        log.info(
            "registry.agent.registered",
            agent_id=agent.id,
            name=agent.name,
            specialization=agent.specialization.value,
            capacity=agent.capacity,
        )
        return dataclasses.replace(agent)

    async def set_status(self, agent_id: str, status: AgentStatus | str) -> Agent:
        """Update an agent's lifecycle status.

        Raises:
            NotFoundError: If no agent has that id.
        """
        new_status = parse_agent_status(status)
        async with self.transaction() as txn:
            agent = txn.get(agent_id)
            txn.set_status(agent, new_status)
            updated = dataclasses.replace(agent)

        log.info("registry.agent.status_changed", agent_id=agent_id, status=new_status.value)
        return updated

    async def increment_load(self, agent_id: str) -> Agent:
        """Raise an agent's load by one. No capacity check.

        Raises:
            NotFoundError: If no agent has that id.
        """
        async with self.transaction() as txn:
            agent = txn.get(agent_id)
            txn.increment(agent)
            return dataclasses.replace(agent)

    async def decrement_load(self, agent_id: str) -> Agent:
        """Lower an agent's load by one, never below zero.

        Raises:
            NotFoundError: If no agent has that id.
        """
        async with self.transaction() as txn:
            agent = txn.get(agent_id)
            if not txn.decrement(agent):
                log.warning("registry.agent.load_already_zero", agent_id=agent_id)
            return dataclasses.replace(agent)


__all__ = [
    "AGENTS_KEY",
    "AgentRegistry",
    "RegistryTransaction",
]
