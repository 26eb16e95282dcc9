"""Rich tables for agents, work items and load reports."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from rich.table import Table

from switchyard.cli.formatters import console
from switchyard.core.models import Agent, WorkItem


def create_table(
    title: str | None = None,
    *,
    show_header: bool = True,
    show_lines: bool = False,
    border_style: str = "blue",
    header_style: str = "bold cyan",
    row_styles: list[str] | None = None,
) -> Table:
    """Create a Rich Table with consistent Switchyard styling.

    Args:
        title: Optional table title.
        show_header: Whether to show the header row.
        show_lines: Whether to show lines between rows.
        border_style: Style for table borders.
        header_style: Style for header row.
        row_styles: Alternating row styles (default: subtle alternation).

    Returns:
        Configured Rich Table instance.
    """
    if row_styles is None:
        row_styles = ["", "dim"]

    return Table(
        title=title,
        show_header=show_header,
        show_lines=show_lines,
        border_style=border_style,
        header_style=header_style,
        row_styles=row_styles,
    )


def create_key_value_table(
    data: dict[str, Any],
    title: str | None = None,
    *,
    key_style: str = "cyan",
    value_style: str = "",
) -> Table:
    """Create a two-column table for key-value data.

    Example:
        table = create_key_value_table({"ID": agent.id, "Load": "2/3"}, "Agent")
        print_table(table)
    """
    table = create_table(title, show_header=False)
    table.add_column("Key", style=key_style, no_wrap=True)
    table.add_column("Value", style=value_style)

    for key, value in data.items():
        table.add_row(str(key), str(value))

    return table


def _get_status_style(status: str) -> str:
    """Map a status value to a semantic style."""
    status_lower = status.lower()
    if status_lower in ("running", "completed", "balanced", "rebalanced"):
        return "success"
    elif status_lower in ("starting", "pending", "in-progress", "partial"):
        return "warning"
    elif status_lower in ("failed", "disconnected", "cannot_balance"):
        return "error"
    return ""


def styled_status(status: str) -> str:
    style = _get_status_style(status)
    return f"[{style}]{status}[/]" if style else status


def _format_ms(timestamp_ms: int | None) -> str:
    if timestamp_ms is None:
        return "-"
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def create_agents_table(agents: Iterable[Agent], title: str | None = "Agents") -> Table:
    table = create_table(title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Specialization")
    table.add_column("Status", justify="center")
    table.add_column("Load", justify="right")

    for agent in agents:
        table.add_row(
            agent.id,
            agent.name,
            agent.specialization.value,
            styled_status(agent.status.value),
            f"{agent.current_load}/{agent.capacity}",
        )
    return table


def create_work_items_table(items: Iterable[WorkItem], title: str | None = "Work Queue") -> Table:
    table = create_table(title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Priority", justify="center")
    table.add_column("Status", justify="center")
    table.add_column("Assigned To")
    table.add_column("Created")

    for item in items:
        table.add_row(
            item.id,
            item.title,
            item.priority.value,
            styled_status(item.status.value),
            item.assigned_to or "-",
            _format_ms(item.created_at),
        )
    return table


def create_load_table(distribution: dict[str, Any]) -> Table:
    """Render LoadBalancer.load_distribution() output, busiest agent first."""
    title = (
        f"Load: {distribution['total_load']}/{distribution['total_capacity']} "
        f"({distribution['load_percentage']:.1f}%)"
    )
    table = create_table(title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Specialization")
    table.add_column("Status", justify="center")
    table.add_column("Load", justify="right")
    table.add_column("Load %", justify="right")

    for row in distribution["agents"]:
        percentage = row["load_percentage"]
        style = "error" if percentage > 100 else ("warning" if percentage >= 80 else "")
        rendered = f"{percentage:.1f}%"
        table.add_row(
            row["id"],
            row["name"],
            row["specialization"],
            styled_status(row["status"]),
            f"{row['current_load']}/{row['capacity']}",
            f"[{style}]{rendered}[/]" if style else rendered,
        )
    return table


def print_table(table: Table) -> None:
    console.print(table)


__all__ = [
    "create_agents_table",
    "create_key_value_table",
    "create_load_table",
    "create_table",
    "create_work_items_table",
    "print_table",
    "styled_status",
]
