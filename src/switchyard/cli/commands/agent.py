"""Agent command group for Switchyard.

Register agents, route tasks to them and keep their load balanced.
"""

import asyncio
import time
from typing import Annotated, Any

import typer

from switchyard.cli.formatters import console
from switchyard.cli.formatters.panels import print_info, print_success, print_warning
from switchyard.cli.formatters.tables import (
    create_agents_table,
    create_key_value_table,
    create_load_table,
    create_table,
    print_table,
    styled_status,
)
from switchyard.cli.runtime import (
    CLIState,
    build_executor,
    build_notifier,
    get_state,
    handle_errors,
    open_runtime,
    warn_if_not_durable,
)
from switchyard.core.errors import NoAvailableAgentError
from switchyard.core.models import Agent, Specialization
from switchyard.orchestration import (
    BalanceStatus,
    Dispatcher,
    DispatchReport,
    RebalanceSummary,
    SpecializationClassifier,
)
from switchyard.persistence.metrics import DURATION_METRIC, SUCCESS_METRIC

app = typer.Typer(
    name="agent",
    help="Manage agents and route work to them.",
    no_args_is_help=True,
)


def _agent_details(agent: Agent) -> dict[str, str]:
    return {
        "ID": agent.id,
        "Name": agent.name,
        "Specialization": agent.specialization.value,
        "Status": styled_status(agent.status.value),
        "Load": f"{agent.current_load}/{agent.capacity}",
    }


async def _register(state: CLIState, name: str, specialization: str, capacity: int) -> Agent:
    runtime = await open_runtime(state)
    agent = await runtime.registry.register(name, specialization, capacity)
    warn_if_not_durable(runtime.registry)
    return agent


@app.command()
def register(
    ctx: typer.Context,
    name: Annotated[str, typer.Option("--name", "-n", help="Display name for the agent.")],
    specialization: Annotated[
        str,
        typer.Option(
            "--specialization",
            "-s",
            help="frontend, backend, database, devops or general.",
        ),
    ] = Specialization.GENERAL.value,
    capacity: Annotated[
        int,
        typer.Option("--capacity", "-c", min=1, help="Maximum concurrent tasks."),
    ] = 1,
) -> None:
    """Register a new agent. It starts in STARTING with zero load."""
    with handle_errors():
        agent = asyncio.run(_register(get_state(ctx), name, specialization, capacity))
    print_success(f"Registered agent {agent.id}", title="Agent registered")
    print_table(create_key_value_table(_agent_details(agent)))


async def _list_agents(state: CLIState, status: str | None) -> list[Agent]:
    runtime = await open_runtime(state)
    return runtime.registry.list(status)


@app.command("list")
def list_agents(
    ctx: typer.Context,
    status: Annotated[
        str | None,
        typer.Option(
            "--status",
            help="Filter by status (STARTING, RUNNING, COMPLETED, FAILED, DISCONNECTED).",
        ),
    ] = None,
) -> None:
    """List registered agents."""
    with handle_errors():
        agents = asyncio.run(_list_agents(get_state(ctx), status))

    if not agents:
        print_info("No agents found")
        return
    print_table(create_agents_table(agents, title=f"Agents ({len(agents)})"))


async def _status(state: CLIState, agent_id: str, new_status: str | None) -> Agent:
    runtime = await open_runtime(state)
    if new_status is None:
        return runtime.registry.get(agent_id)
    agent = await runtime.registry.set_status(agent_id, new_status)
    warn_if_not_durable(runtime.registry)
    return agent


@app.command()
def status(
    ctx: typer.Context,
    agent_id: Annotated[str, typer.Argument(help="Agent ID.")],
    set_status: Annotated[
        str | None,
        typer.Option("--set", help="Set the agent's lifecycle status."),
    ] = None,
) -> None:
    """Show an agent, or change its status with --set."""
    with handle_errors():
        agent = asyncio.run(_status(get_state(ctx), agent_id, set_status))
    print_table(create_key_value_table(_agent_details(agent), "Agent"))


async def _heartbeat(state: CLIState, agent_id: str) -> Agent:
    runtime = await open_runtime(state)
    agent = await runtime.monitor().heartbeat(agent_id)
    warn_if_not_durable(runtime.registry)
    return agent


@app.command()
def heartbeat(
    ctx: typer.Context,
    agent_id: Annotated[str, typer.Argument(help="Agent ID.")],
) -> None:
    """Report an agent as alive. Marks it RUNNING."""
    with handle_errors():
        agent = asyncio.run(_heartbeat(get_state(ctx), agent_id))
    print_success(f"Agent {agent.id} is {agent.status.value}", title="Heartbeat")


async def _assign(
    state: CLIState,
    task_id: str,
    agent_id: str | None,
    dry_run: bool,
) -> tuple[Agent | None, Specialization | None]:
    runtime = await open_runtime(state)
    engine = runtime.engine()
    item = runtime.queue.get(task_id)
    specialization = engine.specialization_for(item)

    if dry_run:
        return await engine.route(task_id), specialization

    agent = await engine.assign(task_id, agent_id)
    await runtime.queue.assign(task_id, agent.id)
    warn_if_not_durable(runtime.registry)
    return agent, specialization


@app.command()
def assign(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task ID from the work queue.")],
    agent_id: Annotated[
        str | None,
        typer.Option("--agent", "-a", help="Assign to this agent instead of routing."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show where the task would go without assigning."),
    ] = False,
) -> None:
    """Assign a queued task to an agent.

    Without --agent the task is classified and routed to the least loaded
    RUNNING agent with a matching (or general) specialization.
    """
    with handle_errors():
        agent, specialization = asyncio.run(_assign(get_state(ctx), task_id, agent_id, dry_run))

    if agent is None:
        print_warning(f"No agent available for {specialization}", title="Dry run")
    elif dry_run:
        print_info(
            f"Task {task_id} ({specialization}) would go to {agent.name} ({agent.id})",
            title="Dry run",
        )
    else:
        print_success(
            f"Task {task_id} assigned to {agent.name} ({agent.id}), "
            f"load {agent.current_load}/{agent.capacity}",
            title="Assigned",
        )


async def _complete(state: CLIState, agent_id: str, task_id: str) -> Agent:
    runtime = await open_runtime(state)
    agent = await runtime.engine().complete(agent_id, task_id)
    warn_if_not_durable(runtime.registry)
    return agent


@app.command()
def complete(
    ctx: typer.Context,
    agent_id: Annotated[str, typer.Argument(help="Agent that finished the task.")],
    task_id: Annotated[str, typer.Argument(help="Finished task ID.")],
) -> None:
    """Release the slot a finished task held on an agent."""
    with handle_errors():
        agent = asyncio.run(_complete(get_state(ctx), agent_id, task_id))
    print_success(
        f"Agent {agent.id} load is now {agent.current_load}/{agent.capacity}",
        title="Completed",
    )


async def _balance(state: CLIState, check_only: bool) -> tuple[bool, RebalanceSummary | None]:
    runtime = await open_runtime(state)
    balancer = runtime.balancer()
    needed = balancer.needs_balancing()
    if check_only:
        return needed, None

    summary = await balancer.rebalance()
    warn_if_not_durable(runtime.registry)
    return needed, summary


@app.command()
def balance(
    ctx: typer.Context,
    check: Annotated[
        bool,
        typer.Option("--check", help="Only report whether balancing is needed."),
    ] = False,
) -> None:
    """Move excess load from over-capacity agents to agents with room."""
    with handle_errors():
        needed, summary = asyncio.run(_balance(get_state(ctx), check))

    if summary is None:
        if needed:
            print_warning("Load is uneven or an agent is over capacity", title="Balancing needed")
        else:
            print_success("Load is within threshold", title="Balanced")
        return

    if summary.status == BalanceStatus.CANNOT_BALANCE:
        print_warning(
            f"All agents are at or over capacity; {summary.remaining_excess} excess task(s) remain",
            title="Cannot balance",
        )
        raise typer.Exit(1)
    if summary.status == BalanceStatus.BALANCED:
        print_info("No agent is over capacity", title="Balanced")
        return

    message = f"Moved {summary.moved} task(s)"
    if summary.status == BalanceStatus.PARTIAL:
        print_warning(
            f"{message}; {summary.remaining_excess} excess remain", title="Partially balanced"
        )
    else:
        print_success(message, title="Rebalanced")


async def _load(state: CLIState) -> dict[str, Any]:
    runtime = await open_runtime(state)
    return runtime.balancer().load_distribution()


@app.command()
def load(ctx: typer.Context) -> None:
    """Show load per agent, busiest first."""
    with handle_errors():
        distribution = asyncio.run(_load(get_state(ctx)))

    if not distribution["agents"]:
        print_info("No agents found")
        return
    print_table(create_load_table(distribution))
    if distribution["needs_balancing"]:
        console.print("[warning]Balancing recommended: run `switchyard agent balance`[/]")


async def _metrics(state: CLIState, since_minutes: float | None) -> dict[str, Any]:
    runtime = await open_runtime(state)
    metrics = runtime.metrics
    start = int((time.time() - since_minutes * 60) * 1000) if since_minutes is not None else None
    return {
        "tasks": len(metrics.metrics(SUCCESS_METRIC, start=start)),
        "success_rate": metrics.success_rate(start=start),
        "average_duration": metrics.average(DURATION_METRIC, start=start),
        "agents": metrics.summary(start=start),
    }


def _format_duration(seconds: float | None) -> str:
    return "-" if seconds is None else f"{seconds:.2f}s"


@app.command()
def metrics(
    ctx: typer.Context,
    since: Annotated[
        float | None,
        typer.Option("--since", min=0.0, help="Only count tasks from the last N minutes."),
    ] = None,
) -> None:
    """Show task success rate and duration, overall and per agent."""
    with handle_errors():
        report = asyncio.run(_metrics(get_state(ctx), since))

    if not report["tasks"]:
        print_info("No task metrics recorded")
        return

    print_table(
        create_key_value_table(
            {
                "Tasks": str(report["tasks"]),
                "Success rate": f"{report['success_rate']:.1f}%",
                "Average duration": _format_duration(report["average_duration"]),
            },
            title="Performance",
        )
    )

    table = create_table("Per agent")
    table.add_column("Agent", style="cyan", no_wrap=True)
    table.add_column("Tasks", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Avg duration", justify="right")
    for agent_id, stats in report["agents"].items():
        table.add_row(
            agent_id or "-",
            str(stats["tasks"]),
            f"{stats['success_rate']:.1f}%",
            _format_duration(stats["average_duration"]),
        )
    print_table(table)


@app.command()
def classify(
    text: Annotated[str, typer.Argument(help="Task description to classify.")],
    files: Annotated[
        list[str] | None,
        typer.Option("--file", "-f", help="File the task touches (repeatable)."),
    ] = None,
) -> None:
    """Show which specialization a description routes to, with scores."""
    classifier = SpecializationClassifier()
    scores = classifier.score(text, files or [])
    winner = classifier.classify(text, files or [])

    table = create_table(f"Classified as {winner.value}")
    table.add_column("Specialization", style="cyan")
    table.add_column("Score", justify="right")
    for tag, value in scores.items():
        marker = " *" if tag == winner else ""
        table.add_row(f"{tag.value}{marker}", str(value))
    print_table(table)


async def _start(
    state: CLIState,
    agent_id: str | None,
    executor_kind: str | None,
    timeout: float | None,
    max_tasks: int | None,
) -> list[DispatchReport]:
    runtime = await open_runtime(state)
    monitor = runtime.monitor()
    balancer = runtime.balancer()
    dispatcher = Dispatcher(
        runtime.queue,
        runtime.engine(),
        monitor,
        build_executor(runtime, executor_kind),
        notifier=build_notifier(runtime),
        metrics=runtime.metrics,
    )

    reports: list[DispatchReport] = []
    balancer.start(runtime.config.balancer.interval_seconds)
    monitor.start()
    try:
        while max_tasks is None or len(reports) < max_tasks:
            try:
                report = await dispatcher.run_next(agent_id, timeout)
            except NoAvailableAgentError as e:
                print_warning(e.message, title=e.kind)
                break
            if report is None:
                break
            reports.append(report)
    finally:
        await monitor.stop()
        await balancer.stop()

    warn_if_not_durable(runtime.registry)
    return reports


@app.command()
def start(
    ctx: typer.Context,
    agent_id: Annotated[
        str | None,
        typer.Option("--agent", "-a", help="Run everything on this agent instead of routing."),
    ] = None,
    executor: Annotated[
        str | None,
        typer.Option("--executor", "-e", help="mock, local or remote (default from config)."),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", min=0.1, help="Per-task timeout in minutes."),
    ] = None,
    max_tasks: Annotated[
        int | None,
        typer.Option("--max-tasks", "-n", min=1, help="Stop after this many tasks."),
    ] = None,
) -> None:
    """Work through pending tasks: route, execute and complete each one.

    The load balancer and heartbeat monitor run in the background until the
    queue is drained.
    """
    timeout_seconds = timeout * 60 if timeout is not None else None
    with handle_errors():
        reports = asyncio.run(
            _start(get_state(ctx), agent_id, executor, timeout_seconds, max_tasks)
        )

    if not reports:
        print_info("No tasks dispatched")
        return

    table = create_table(f"Dispatched {len(reports)} task(s)")
    table.add_column("Task", style="cyan", no_wrap=True)
    table.add_column("Agent", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Result")
    for report in reports:
        detail = report.error or (report.outcome.output if report.outcome else "")
        table.add_row(
            report.task_id,
            report.agent_id,
            styled_status(report.status.value),
            detail[:60],
        )
    print_table(table)

    if any(not report.succeeded for report in reports):
        raise typer.Exit(1)


__all__ = ["app"]
