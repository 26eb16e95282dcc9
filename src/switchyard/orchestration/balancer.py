"""Load Balancer: moves excess load off over-capacity agents.

A rebalance pass:
1. Splits agents into overloaded (load > capacity) and underloaded
   (load < capacity). Agents exactly at capacity are left alone.
2. Does nothing if nobody is overloaded, and reports CANNOT_BALANCE if
   nobody has room.
3. For each overloaded agent, moves its excess one unit at a time to the
   eligible agent with the lowest load ratio. Ties go to registration
   order. A target leaves the eligible set once full; when the set is
   empty the pass stops.
4. Persists once at the end.

The periodic mode runs passes on a timer. A tick that finds a pass still in
flight is skipped, and stop() waits for the running pass instead of
cancelling it.

Usage:
    balancer = LoadBalancer(registry, stddev_threshold=0.2)
    summary = await balancer.rebalance()

    balancer.start(interval_seconds=60.0)
    ...
    await balancer.stop()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
import math
from typing import Any

from switchyard.core.models import Agent, AgentStatus
from switchyard.observability.logging import get_logger
from switchyard.orchestration.registry import AgentRegistry, RegistryTransaction

log = get_logger(__name__)

DEFAULT_STDDEV_THRESHOLD = 0.2


class BalanceStatus(StrEnum):
    """Outcome of a rebalance pass.

    Attributes:
        BALANCED: No agent was over capacity; nothing changed.
        REBALANCED: All excess load was absorbed.
        PARTIAL: Some excess remained after every target filled up.
        CANNOT_BALANCE: Agents were over capacity but none had room.
    """

    BALANCED = "balanced"
    REBALANCED = "rebalanced"
    PARTIAL = "partial"
    CANNOT_BALANCE = "cannot_balance"


@dataclass(frozen=True, slots=True)
class LoadMove:
    """One unit of load moved from source to target."""

    source_id: str
    target_id: str


@dataclass(frozen=True, slots=True)
class RebalanceSummary:
    """Result of a rebalance pass.

    Attributes:
        status: Overall outcome.
        moves: Individual transfers, in order.
        remaining_excess: Load still above capacity after the pass.
    """

    status: BalanceStatus
    moves: tuple[LoadMove, ...] = field(default_factory=tuple)
    remaining_excess: int = 0

    @property
    def moved(self) -> int:
        return len(self.moves)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "moved": self.moved,
            "remaining_excess": self.remaining_excess,
        }


def load_ratio_stddev(agents: list[Agent]) -> float:
    """Population standard deviation of load ratios (0.0 for < 2 agents)."""
    if len(agents) <= 1:
        return 0.0
    ratios = [agent.load_ratio for agent in agents]
    mean = sum(ratios) / len(ratios)
    variance = sum((r - mean) ** 2 for r in ratios) / len(ratios)
    return math.sqrt(variance)


class LoadBalancer:
    """Redistributes load across the agents of a registry."""

    def __init__(
        self,
        registry: AgentRegistry,
        stddev_threshold: float = DEFAULT_STDDEV_THRESHOLD,
    ) -> None:
        self._registry = registry
        self._stddev_threshold = stddev_threshold

        self._pass_in_flight = False
        self._timer_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self._retired_tasks: list[asyncio.Task[None]] = []

    @property
    def is_running(self) -> bool:
        """True while the periodic timer is active."""
        return self._timer_task is not None and not self._timer_task.done()

    def needs_balancing(self) -> bool:
        """Return True if any agent is over capacity or RUNNING loads are uneven."""
        agents = self._registry.list()
        if any(agent.is_overloaded for agent in agents):
            return True

        running = [agent for agent in agents if agent.status == AgentStatus.RUNNING]
        return load_ratio_stddev(running) > self._stddev_threshold

    def load_distribution(self) -> dict[str, Any]:
        """Report totals and per-agent load percentages, busiest first."""
        agents = self._registry.list()
        total_capacity = sum(agent.capacity for agent in agents)
        total_load = sum(agent.current_load for agent in agents)

        rows = [
            {
                "id": agent.id,
                "name": agent.name,
                "specialization": agent.specialization.value,
                "status": agent.status.value,
                "capacity": agent.capacity,
                "current_load": agent.current_load,
                "load_percentage": agent.load_ratio * 100,
            }
            for agent in agents
        ]
        rows.sort(key=lambda row: row["load_percentage"], reverse=True)

        return {
            "total_capacity": total_capacity,
            "total_load": total_load,
            "load_percentage": (total_load / total_capacity * 100) if total_capacity else 0.0,
            "needs_balancing": self.needs_balancing(),
            "agents": rows,
        }

    async def rebalance(self) -> RebalanceSummary:
        """Run one rebalance pass under the registry lock."""
        self._pass_in_flight = True
        try:
            async with self._registry.transaction() as txn:
                summary = self._redistribute(txn)
        finally:
            self._pass_in_flight = False

        if summary.status == BalanceStatus.CANNOT_BALANCE:
            log.warning(
                "balancer.cannot_balance",
                reason="all agents are at or over capacity",
                remaining_excess=summary.remaining_excess,
            )
        else:
            log.info("balancer.pass.completed", **summary.to_dict())
        return summary

    def _redistribute(self, txn: RegistryTransaction) -> RebalanceSummary:
        agents = txn.agents
        overloaded = [agent for agent in agents if agent.is_overloaded]
        if not overloaded:
            return RebalanceSummary(status=BalanceStatus.BALANCED)

        eligible = [agent for agent in agents if agent.has_spare_capacity]
        if not eligible:
            excess = sum(agent.current_load - agent.capacity for agent in overloaded)
            return RebalanceSummary(
                status=BalanceStatus.CANNOT_BALANCE,
                remaining_excess=excess,
            )

        moves: list[LoadMove] = []
        for source in overloaded:
            excess = source.current_load - source.capacity
            for _ in range(excess):
                if not eligible:
                    break
                # min() keeps the first of equal ratios: registration order
                target = min(eligible, key=lambda a: a.load_ratio)
                txn.transfer(source, target)
                moves.append(LoadMove(source_id=source.id, target_id=target.id))

                if target.current_load >= target.capacity:
                    eligible.remove(target)

        remaining = sum(max(0, agent.current_load - agent.capacity) for agent in overloaded)
        status = BalanceStatus.REBALANCED if remaining == 0 else BalanceStatus.PARTIAL
        return RebalanceSummary(status=status, moves=tuple(moves), remaining_excess=remaining)

    def start(self, interval_seconds: float) -> None:
        """Start periodic rebalancing. Restarts the timer if already running.

        Must be called from inside a running event loop.
        """
        if interval_seconds <= 0:
            msg = f"interval_seconds must be positive, got {interval_seconds}"
            raise ValueError(msg)

        if self._timer_task is not None and self._stop_event is not None:
            # The old loop exits at its next wait; stop() awaits it
            self._stop_event.set()
            self._retired_tasks.append(self._timer_task)

        self._stop_event = asyncio.Event()
        self._timer_task = asyncio.create_task(
            self._run_periodic(interval_seconds, self._stop_event)
        )
        log.info("balancer.timer.started", interval_seconds=interval_seconds)

    async def stop(self) -> None:
        """Stop periodic rebalancing, letting in-flight passes finish.

        Loops replaced by an earlier restart are awaited too.
        """
        if self._timer_task is None or self._stop_event is None:
            return

        self._stop_event.set()
        tasks = [*self._retired_tasks, self._timer_task]
        self._retired_tasks = []
        await asyncio.gather(*tasks)
        self._timer_task = None
        self._stop_event = None
        log.info("balancer.timer.stopped")

    async def tick(self) -> RebalanceSummary | None:
        """Run a pass unless one is already in flight."""
        if self._pass_in_flight:
            log.debug("balancer.tick.skipped", reason="pass in flight")
            return None
        return await self.rebalance()

    async def _run_periodic(self, interval_seconds: float, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except TimeoutError:
                pass
            if stop_event.is_set():
                break

            try:
                await self.tick()
            except Exception as e:
                log.exception("balancer.pass.failed", error=str(e))


__all__ = [
    "BalanceStatus",
    "DEFAULT_STDDEV_THRESHOLD",
    "LoadBalancer",
    "LoadMove",
    "RebalanceSummary",
    "load_ratio_stddev",
]
