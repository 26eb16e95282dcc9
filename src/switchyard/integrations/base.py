"""Capability protocols for post-completion adapters.

Nothing in the assignment path depends on these. The dispatcher calls a
NotificationIntegration after a task finishes; issue and CI adapters are
declared here so third-party implementations have a stable shape.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class NotificationIntegration(Protocol):
    """Sends human-readable messages to a chat or alerting channel."""

    async def send_message(self, text: str, **fields: Any) -> None:
        """Send a message.

        Args:
            text: Message body.
            **fields: Structured context (task id, agent id, status).
        """
        ...


@runtime_checkable
class IssueTrackingIntegration(Protocol):
    """Creates and updates issues in an external tracker."""

    async def create_issue(self, title: str, body: str, labels: list[str] | None = None) -> str:
        """Create an issue and return its tracker id."""
        ...

    async def update_issue(self, issue_id: str, **changes: Any) -> None:
        ...


@runtime_checkable
class CICDIntegration(Protocol):
    """Triggers and cancels pipelines on a CI service."""

    async def trigger_pipeline(self, pipeline: str, parameters: dict[str, Any] | None = None) -> str:
        """Start a pipeline run and return its run id."""
        ...

    async def cancel_pipeline(self, run_id: str) -> None:
        ...


__all__ = [
    "CICDIntegration",
    "IssueTrackingIntegration",
    "NotificationIntegration",
]
