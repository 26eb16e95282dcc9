"""Unit tests for switchyard.orchestration.registry module."""

import asyncio
from typing import Any

import pytest

from switchyard.core.errors import NotFoundError, StorageError, ValidationError
from switchyard.core.models import AgentStatus, Specialization
from switchyard.orchestration.registry import AGENTS_KEY, AgentRegistry
from switchyard.persistence.storage import MemoryStorage


class FlakyStorage(MemoryStorage):
    """MemoryStorage whose saves fail while ``failing`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False
        self.saves = 0

    async def save(self, key: str, value: Any) -> None:
        self.saves += 1
        if self.failing:
            raise StorageError("disk full", key=key, operation="save")
        await super().save(key, value)


class TestRegister:
    """Test agent registration."""

    async def test_register_persists_agent(
        self, registry: AgentRegistry, storage: MemoryStorage
    ) -> None:
        agent = await registry.register("ui-1", "frontend", 3)

        stored = await storage.load(AGENTS_KEY)
        assert stored == [agent.to_dict()]
        assert agent.status == AgentStatus.STARTING
        assert agent.current_load == 0

    async def test_register_validates(self, registry: AgentRegistry) -> None:
        with pytest.raises(ValidationError):
            await registry.register("ui-1", "frontend", 0)

        assert registry.list() == []

    async def test_list_keeps_registration_order(self, registry: AgentRegistry) -> None:
        names = ["c", "a", "b"]
        for name in names:
            await registry.register(name, Specialization.GENERAL, 1)

        assert [a.name for a in registry.list()] == names

    async def test_list_filters_by_status(self, registry: AgentRegistry) -> None:
        a = await registry.register("a", "general", 1)
        await registry.register("b", "general", 1)
        await registry.set_status(a.id, "running")

        assert [x.id for x in registry.list(AgentStatus.RUNNING)] == [a.id]

    async def test_returned_agents_are_copies(self, registry: AgentRegistry) -> None:
        agent = await registry.register("a", "general", 1)
        agent.current_load = 99

        assert registry.get(agent.id).current_load == 0


class TestStatusAndLoad:
    """Test status updates and load counters."""

    async def test_set_status_unknown_agent(self, registry: AgentRegistry) -> None:
        with pytest.raises(NotFoundError):
            await registry.set_status("agent-missing", AgentStatus.RUNNING)

    async def test_set_status_rejects_unknown_value(self, registry: AgentRegistry) -> None:
        agent = await registry.register("a", "general", 1)

        with pytest.raises(ValidationError):
            await registry.set_status(agent.id, "sleeping")

    async def test_increment_has_no_capacity_check(self, registry: AgentRegistry) -> None:
        agent = await registry.register("a", "general", 1)

        await registry.increment_load(agent.id)
        updated = await registry.increment_load(agent.id)

        assert updated.current_load == 2

    async def test_decrement_never_goes_negative(self, registry: AgentRegistry) -> None:
        agent = await registry.register("a", "general", 1)

        updated = await registry.decrement_load(agent.id)

        assert updated.current_load == 0

    async def test_unchanged_status_does_not_persist(self) -> None:
        storage = FlakyStorage()
        registry = AgentRegistry(storage)
        agent = await registry.register("a", "general", 1)
        saves = storage.saves

        await registry.set_status(agent.id, AgentStatus.STARTING)
        await registry.decrement_load(agent.id)

        assert storage.saves == saves


class TestPersistence:
    """Test reload and best-effort persistence."""

    async def test_reload_round_trips(self, storage: MemoryStorage) -> None:
        first = AgentRegistry(storage)
        agent = await first.register("db-1", "database", 2)
        await first.increment_load(agent.id)

        second = AgentRegistry(storage)
        await second.initialize()

        assert second.get(agent.id).current_load == 1
        assert second.get(agent.id).specialization == Specialization.DATABASE

    async def test_malformed_data_starts_empty(self) -> None:
        registry = AgentRegistry(MemoryStorage({AGENTS_KEY: [{"id": "agent-1"}]}))

        await registry.initialize()

        assert registry.list() == []

    async def test_zero_capacity_record_starts_empty(self) -> None:
        records = [
            {"id": "a", "name": "a", "status": "RUNNING", "specialization": "general",
             "capacity": 0, "currentLoad": 0},
            {"id": "b", "name": "b", "status": "RUNNING", "specialization": "general",
             "capacity": 2, "currentLoad": 1},
        ]
        registry = AgentRegistry(MemoryStorage({AGENTS_KEY: records}))

        await registry.initialize()

        assert registry.list() == []

    async def test_failed_save_keeps_in_memory_mutation(self) -> None:
        """The mutation stands; the registry reports itself as not durable."""
        storage = FlakyStorage()
        registry = AgentRegistry(storage)
        agent = await registry.register("a", "general", 2)
        storage.failing = True

        updated = await registry.increment_load(agent.id)

        assert updated.current_load == 1
        assert registry.get(agent.id).current_load == 1
        assert not registry.is_durable
        assert isinstance(registry.last_persist_error, StorageError)
        assert (await storage.load(AGENTS_KEY))[0]["currentLoad"] == 0

    async def test_next_successful_save_clears_error(self) -> None:
        storage = FlakyStorage()
        registry = AgentRegistry(storage)
        agent = await registry.register("a", "general", 2)
        storage.failing = True
        await registry.increment_load(agent.id)

        storage.failing = False
        await registry.increment_load(agent.id)

        assert registry.is_durable
        assert (await storage.load(AGENTS_KEY))[0]["currentLoad"] == 2


class TestTransaction:
    """Test the locked mutation block."""

    async def test_transaction_persists_once(self) -> None:
        storage = FlakyStorage()
        registry = AgentRegistry(storage)
        a = await registry.register("a", "general", 5)
        b = await registry.register("b", "general", 5)
        saves = storage.saves

        async with registry.transaction() as txn:
            txn.increment(txn.get(a.id))
            txn.increment(txn.get(a.id))
            txn.transfer(txn.get(a.id), txn.get(b.id))

        assert storage.saves == saves + 1
        assert registry.get(a.id).current_load == 1
        assert registry.get(b.id).current_load == 1

    async def test_transfer_from_idle_agent_raises(self, registry: AgentRegistry) -> None:
        a = await registry.register("a", "general", 1)
        b = await registry.register("b", "general", 1)

        with pytest.raises(ValueError):
            async with registry.transaction() as txn:
                txn.transfer(txn.get(a.id), txn.get(b.id))

    async def test_lock_serializes_mutations(self, registry: AgentRegistry) -> None:
        """A pending mutation waits for an open transaction to close."""
        agent = await registry.register("a", "general", 1)
        entered = asyncio.Event()
        release = asyncio.Event()

        async def hold() -> None:
            async with registry.transaction():
                entered.set()
                await release.wait()

        holder = asyncio.create_task(hold())
        await entered.wait()
        pending = asyncio.create_task(registry.increment_load(agent.id))
        await asyncio.sleep(0)

        assert not pending.done()
        assert registry.lock.locked()

        release.set()
        await holder
        assert (await pending).current_load == 1
