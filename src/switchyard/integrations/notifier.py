"""Notification adapters.

- LogNotifier: writes notifications to the structured log
- SlackWebhookNotifier: posts to a Slack-compatible incoming webhook

Notification failures are logged and never propagate; a missed message must
not fail the task it reports on.
"""

from __future__ import annotations

from typing import Any

import httpx
import stamina

from switchyard.core.security import mask_secret
from switchyard.observability.logging import get_logger

log = get_logger(__name__)

RETRIABLE_EXCEPTIONS = (httpx.TransportError,)


class LogNotifier:
    """Send notifications to the log only."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send_message(self, text: str, **fields: Any) -> None:
        self.sent.append(text)
        log.info("notification.sent", notifier="log", text=text, fields=fields)


class SlackWebhookNotifier:
    """Post messages to a Slack incoming webhook.

    Example:
        notifier = SlackWebhookNotifier("https://hooks.slack.com/services/...")
        await notifier.send_message("Task abc completed", task_id="abc")
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        max_retries: int = 3,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._channel = channel
        self._max_retries = max_retries
        self._timeout = timeout
        self._client = client

    def build_payload(self, text: str, **fields: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": text}
        if self._channel:
            payload["channel"] = self._channel
        if fields:
            payload["attachments"] = [
                {
                    "fields": [
                        {"title": key, "value": str(value), "short": True}
                        for key, value in fields.items()
                        if value is not None
                    ]
                }
            ]
        return payload

    async def _post(self, payload: dict[str, Any]) -> None:
        if self._client is not None:
            response = await self._client.post(
                self._webhook_url, json=payload, timeout=self._timeout
            )
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._webhook_url, json=payload, timeout=self._timeout)
        response.raise_for_status()

    async def send_message(self, text: str, **fields: Any) -> None:
        payload = self.build_payload(text, **fields)

        @stamina.retry(
            on=RETRIABLE_EXCEPTIONS,
            attempts=self._max_retries,
            wait_initial=0.5,
            wait_max=5.0,
        )
        async def _with_retry() -> None:
            await self._post(payload)

        try:
            await _with_retry()
        except (httpx.TransportError, httpx.HTTPStatusError) as e:
            log.warning(
                "notification.failed",
                notifier="slack",
                webhook=mask_secret(self._webhook_url),
                error=str(e),
            )
            return

        log.info("notification.sent", notifier="slack", fields=fields)


__all__ = [
    "LogNotifier",
    "SlackWebhookNotifier",
]
