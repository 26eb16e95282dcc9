"""Shared fixtures for Switchyard tests."""

from collections.abc import Awaitable, Callable, Iterator

import pytest
import stamina

from switchyard.core.models import Agent, AgentStatus, Specialization
from switchyard.observability.logging import (
    LoggingConfig,
    configure_logging,
    reset_logging,
    set_console_logging,
)
from switchyard.orchestration.registry import AgentRegistry
from switchyard.persistence.queue import WorkQueue
from switchyard.persistence.storage import MemoryStorage


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Keep log output off the console and out of ~/.switchyard/logs."""
    configure_logging(LoggingConfig(enable_file_logging=False))
    set_console_logging(False)
    yield
    reset_logging()
    set_console_logging(True)


@pytest.fixture(autouse=True)
def fast_retries() -> Iterator[None]:
    """Disable stamina backoff waits."""
    stamina.set_testing(True, attempts=3)
    yield
    stamina.set_testing(False)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
async def registry(storage: MemoryStorage) -> AgentRegistry:
    registry = AgentRegistry(storage)
    await registry.initialize()
    return registry


@pytest.fixture
async def queue(storage: MemoryStorage) -> WorkQueue:
    queue = WorkQueue(storage)
    await queue.initialize()
    return queue


@pytest.fixture
def running_agent(registry: AgentRegistry) -> Callable[..., Awaitable[Agent]]:
    """Factory: register an agent, mark it RUNNING and give it ``load`` units."""

    async def _create(
        name: str,
        specialization: Specialization | str = Specialization.GENERAL,
        capacity: int = 1,
        load: int = 0,
    ) -> Agent:
        agent = await registry.register(name, specialization, capacity)
        await registry.set_status(agent.id, AgentStatus.RUNNING)
        for _ in range(load):
            await registry.increment_load(agent.id)
        return registry.get(agent.id)

    return _create
