"""Rich panels for important messages."""

from rich.markup import escape
from rich.panel import Panel

from switchyard.cli.formatters import console
from switchyard.core.errors import SwitchyardError

_PANEL_STYLES = {
    "info": "blue",
    "warning": "yellow",
    "error": "red",
    "success": "green",
}


def _panel(message: str, title: str, style: str, *, expand: bool = False) -> Panel:
    color = _PANEL_STYLES[style]
    return Panel(
        f"[{style}]{escape(message)}[/]",
        title=f"[bold {color}]{escape(title)}[/]",
        border_style=color,
        expand=expand,
    )


def info_panel(message: str, title: str = "Info", *, expand: bool = False) -> Panel:
    return _panel(message, title, "info", expand=expand)


def warning_panel(message: str, title: str = "Warning", *, expand: bool = False) -> Panel:
    return _panel(message, title, "warning", expand=expand)


def error_panel(message: str, title: str = "Error", *, expand: bool = False) -> Panel:
    return _panel(message, title, "error", expand=expand)


def success_panel(message: str, title: str = "Success", *, expand: bool = False) -> Panel:
    return _panel(message, title, "success", expand=expand)


def print_info(message: str, title: str = "Info") -> None:
    console.print(info_panel(message, title))


def print_warning(message: str, title: str = "Warning") -> None:
    console.print(warning_panel(message, title))


def print_error(message: str, title: str = "Error") -> None:
    console.print(error_panel(message, title))


def print_success(message: str, title: str = "Success") -> None:
    console.print(success_panel(message, title))


def print_switchyard_error(error: SwitchyardError) -> None:
    """Print a domain error with its kind as the panel title.

    Args:
        error: Error raised by the engine.
    """
    print_error(error.message, title=error.kind)


__all__ = [
    "info_panel",
    "warning_panel",
    "error_panel",
    "success_panel",
    "print_info",
    "print_warning",
    "print_error",
    "print_success",
    "print_switchyard_error",
]
