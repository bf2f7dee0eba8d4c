"""Build result notifiers."""
from __future__ import annotations

from tremor.notifiers.base import Notifier, commit_context, format_commit
from tremor.notifiers.sinks import LogNotifier, SlackNotifier, WebhookNotifier

__all__ = [
    "LogNotifier",
    "Notifier",
    "SlackNotifier",
    "WebhookNotifier",
    "commit_context",
    "format_commit",
]
