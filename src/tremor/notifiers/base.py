from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from tremor.core.types import Commit

DEFAULT_FORMAT = "[{status_label}] {project} {short_sha}: {message}"


def commit_context(commit: Commit) -> dict[str, Any]:
    """Placeholders available to notifier message templates."""
    return {
        "project": commit.project,
        "status": commit.status.value,
        "status_label": commit.status_label,
        "sha": commit.sha,
        "short_sha": commit.short_sha,
        "author": commit.author,
        "message": commit.message,
        "date": commit.date.isoformat() if commit.date else "",
    }


def format_commit(template: str, commit: Commit) -> str:
    return template.format_map(commit_context(commit))


class Notifier(ABC):
    """Receives every finished commit of the projects it is registered on."""

    @abstractmethod
    async def notify(self, commit: Commit) -> bool:
        """Deliver *commit*. Return ``True`` on success, ``False`` on failure."""
        ...
