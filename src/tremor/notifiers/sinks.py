"""Notifier implementations: structlog, generic webhook and Slack."""
from __future__ import annotations

from typing import Any

import httpx
import structlog

from tremor.core.types import Commit
from tremor.notifiers.base import DEFAULT_FORMAT, Notifier, format_commit

logger = structlog.get_logger(__name__)


class LogNotifier(Notifier):
    """Logs finished builds via structlog. No external dependencies."""

    def __init__(self, format: str = DEFAULT_FORMAT) -> None:
        self._format = format

    async def notify(self, commit: Commit) -> bool:
        log_fn = logger.info if commit.is_successful else logger.warning
        log_fn(
            "build_notification",
            project=commit.project,
            sha=commit.sha,
            status=commit.status.value,
            text=format_commit(self._format, commit),
        )
        return True


class WebhookNotifier(Notifier):
    """POSTs the commit as JSON to an HTTP endpoint."""

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout

    def __repr__(self) -> str:
        return f"WebhookNotifier(url={self._url!r})"

    async def notify(self, commit: Commit) -> bool:
        payload = commit.model_dump(mode="json")
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    self._url,
                    json=payload,
                    headers=self._headers,
                    timeout=self._timeout,
                )
                return resp.status_code < 400  # noqa: PLR2004
        except Exception as exc:  # noqa: BLE001
            logger.error("webhook_notifier_error", url=self._url, error=str(exc))
            return False


class SlackNotifier(Notifier):
    """Posts a one-line build summary to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        format: str = DEFAULT_FORMAT,
    ) -> None:
        self._webhook_url = webhook_url
        self._channel = channel
        self._format = format

    async def notify(self, commit: Commit) -> bool:
        emoji = ":white_check_mark:" if commit.is_successful else ":x:"
        payload: dict[str, Any] = {"text": f"{emoji} {format_commit(self._format, commit)}"}
        if self._channel:
            payload["channel"] = self._channel
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(self._webhook_url, json=payload, timeout=10.0)
                return resp.status_code < 400  # noqa: PLR2004
        except Exception as exc:  # noqa: BLE001
            logger.error("slack_notifier_error", error=str(exc))
            return False
