"""External adapters triggered after task completion."""

from switchyard.integrations.base import (
    CICDIntegration,
    IssueTrackingIntegration,
    NotificationIntegration,
)
from switchyard.integrations.notifier import LogNotifier, SlackWebhookNotifier

__all__ = [
    # Protocols
    "CICDIntegration",
    "IssueTrackingIntegration",
    "NotificationIntegration",
    # Implementations
    "LogNotifier",
    "SlackWebhookNotifier",
]
