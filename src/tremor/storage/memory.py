from __future__ import annotations

from datetime import datetime

from tremor.core.constants import CommitStatus
from tremor.core.types import Commit, Project
from tremor.storage.base import Storage


class InMemoryStorage(Storage):
    """Dict-backed storage; state lives as long as the instance."""

    def __init__(self) -> None:
        self._commits: dict[tuple[str, str], Commit] = {}
        self._projects: dict[str, Project] = {}

    async def get_commit(self, project: Project, sha: str) -> Commit | None:
        commit = self._commits.get((project.slug, sha))
        return commit.model_copy() if commit is not None else None

    async def init_commit(
        self,
        project: Project,
        sha: str,
        author: str,
        date: datetime,
        message: str,
    ) -> Commit:
        commit = Commit(
            project=project.slug,
            sha=sha,
            author=author,
            date=date,
            message=message,
            status=CommitStatus.PENDING,
        )
        self._commits[(project.slug, sha)] = commit.model_copy()
        return commit

    async def update_commit(self, commit: Commit) -> None:
        self._commits[(commit.project, commit.sha)] = commit.model_copy()

    async def update_project(self, project: Project) -> None:
        self._projects[project.slug] = project.model_copy(update={"notifiers": []})

    async def get_project(self, slug: str) -> Project | None:
        return self._projects.get(slug)

    @property
    def commits(self) -> list[Commit]:
        """All stored commits, in insertion order."""
        return list(self._commits.values())
