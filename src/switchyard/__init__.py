"""Switchyard - Multi-Agent Task Assignment and Load Balancing.

Routes tasks to specialized agents under per-agent capacity limits and
redistributes load when agents become overloaded.

Example:
    # Using CLI
    switchyard agent register --name ui-1 --specialization frontend --capacity 3
    switchyard queue add "Fix navbar" --description "Update header.tsx layout"
    switchyard agent assign <task-id>

    # Using Python
    from switchyard.orchestration import AgentRegistry, AssignmentEngine
    from switchyard.persistence import MemoryStorage, WorkQueue
"""

__version__ = "0.1.0"

__all__ = ["__version__", "main"]


def main() -> None:
    """Main entry point for the Switchyard CLI.

    This function invokes the Typer app from switchyard.cli.main.
    """
    from switchyard.cli.main import app

    app()
