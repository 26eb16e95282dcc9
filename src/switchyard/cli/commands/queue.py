"""Queue command group for Switchyard.

Add, inspect and update work items in the task queue.
"""

import asyncio
from typing import Annotated

import typer

from switchyard.cli.formatters.panels import print_info, print_success
from switchyard.cli.formatters.tables import (
    create_key_value_table,
    create_work_items_table,
    print_table,
    styled_status,
)
from switchyard.cli.runtime import CLIState, get_state, handle_errors, open_runtime
from switchyard.core.models import TaskPriority, TaskStatus, WorkItem

app = typer.Typer(
    name="queue",
    help="Manage the work queue.",
    no_args_is_help=True,
)


def _item_details(item: WorkItem) -> dict[str, str]:
    return {
        "ID": item.id,
        "Title": item.title,
        "Description": item.description,
        "Priority": item.priority.value,
        "Status": styled_status(item.status.value),
        "Assigned To": item.assigned_to or "-",
    }


async def _add(state: CLIState, title: str, description: str | None, priority: str) -> WorkItem:
    runtime = await open_runtime(state)
    return await runtime.queue.add(title, description or "", priority)


@app.command()
def add(
    ctx: typer.Context,
    title: Annotated[str, typer.Argument(help="Short task title.")],
    description: Annotated[
        str | None,
        typer.Option("--description", "-d", help="Task description (defaults to the title)."),
    ] = None,
    priority: Annotated[
        str,
        typer.Option("--priority", "-p", help="low, medium or high."),
    ] = TaskPriority.MEDIUM.value,
) -> None:
    """Add a task to the queue."""
    with handle_errors():
        item = asyncio.run(_add(get_state(ctx), title, description, priority))
    print_success(f"Added task {item.id}", title="Queued")
    print_table(create_key_value_table(_item_details(item)))


async def _list_items(state: CLIState, status: str | None) -> list[WorkItem]:
    runtime = await open_runtime(state)
    return runtime.queue.list(status)


@app.command("list")
def list_items(
    ctx: typer.Context,
    status: Annotated[
        str | None,
        typer.Option(
            "--status",
            help="Filter by status (pending, in-progress, completed, failed).",
        ),
    ] = None,
) -> None:
    """List tasks in the queue."""
    with handle_errors():
        items = asyncio.run(_list_items(get_state(ctx), status))

    if not items:
        print_info("No tasks found")
        return
    print_table(create_work_items_table(items, title=f"Work Queue ({len(items)})"))


async def _next(state: CLIState) -> WorkItem | None:
    runtime = await open_runtime(state)
    return await runtime.queue.next()


@app.command("next")
def next_item(ctx: typer.Context) -> None:
    """Claim the next pending task (highest priority, then oldest)."""
    with handle_errors():
        item = asyncio.run(_next(get_state(ctx)))

    if item is None:
        print_info("No pending tasks")
        return
    print_table(create_key_value_table(_item_details(item), "Next task"))


async def _update(state: CLIState, task_id: str, status: str) -> WorkItem:
    runtime = await open_runtime(state)
    return await runtime.queue.update_status(task_id, status)


@app.command()
def update(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task ID.")],
    status: Annotated[
        str,
        typer.Argument(help=f"New status ({', '.join(s.value for s in TaskStatus)})."),
    ],
) -> None:
    """Update a task's status."""
    with handle_errors():
        item = asyncio.run(_update(get_state(ctx), task_id, status))
    print_success(f"Task {item.id} is now {item.status.value}", title="Updated")


async def _remove(state: CLIState, task_id: str) -> WorkItem:
    runtime = await open_runtime(state)
    return await runtime.queue.remove(task_id)


@app.command()
def remove(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task ID.")],
) -> None:
    """Remove a task from the queue."""
    with handle_errors():
        item = asyncio.run(_remove(get_state(ctx), task_id))
    print_success(f"Removed task {item.id} ({item.title})", title="Removed")


__all__ = ["app"]
