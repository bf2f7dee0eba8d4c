"""Storage collaborator contract for projects and commits."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from tremor.core.types import Commit, Project


class Storage(ABC):
    """Persists projects (keyed by slug) and commits (keyed by project + sha).

    Implementations must provide their own consistency guarantees; the build
    pipeline treats a storage as a transactional key-value store.
    """

    @abstractmethod
    async def get_commit(self, project: Project, sha: str) -> Commit | None:
        """Return the stored commit, or ``None`` if it was never recorded."""

    @abstractmethod
    async def init_commit(
        self,
        project: Project,
        sha: str,
        author: str,
        date: datetime,
        message: str,
    ) -> Commit:
        """Create (or reset) the commit record with status ``pending``."""

    @abstractmethod
    async def update_commit(self, commit: Commit) -> None:
        """Persist status, output and build date of *commit*."""

    @abstractmethod
    async def update_project(self, project: Project) -> None:
        """Create or update the project record."""

    async def get_project(self, slug: str) -> Project | None:
        """Return the stored project (without notifiers). Default: ``None``."""
        return None

    async def close(self) -> None:
        """Release resources held by the storage."""
