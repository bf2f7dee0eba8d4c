"""SQLite storage using stdlib ``sqlite3`` + ``asyncio.to_thread``.

All blocking I/O is delegated to a worker thread so the event loop is never
blocked while a build streams output.
"""
from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from tremor.core.constants import CommitStatus
from tremor.core.exceptions import StorageError
from tremor.core.types import Commit, Project
from tremor.storage.base import Storage

logger = structlog.get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS project (
    slug        TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    repository  TEXT NOT NULL,
    branch      TEXT NOT NULL,
    command     TEXT NOT NULL,
    url_pattern TEXT,
    building    INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS commits (
    project     TEXT NOT NULL,
    sha         TEXT NOT NULL,
    author      TEXT NOT NULL,
    date        TEXT,
    message     TEXT NOT NULL,
    status      TEXT NOT NULL,
    output      TEXT NOT NULL DEFAULT '',
    build_date  TEXT,
    PRIMARY KEY (project, sha)
);
"""

_COMMIT_COLUMNS = "project, sha, author, date, message, status, output, build_date"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteStorage(Storage):
    """Storage backed by a single SQLite database file.

    Args:
        database: Path to the database file, or ``":memory:"``.
    """

    def __init__(self, database: str | Path = ":memory:") -> None:
        self._database = str(database)
        self._conn: sqlite3.Connection | None = None

    def __repr__(self) -> str:
        return f"SQLiteStorage(database={self._database!r})"

    # -- lifecycle ----------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection and create the schema if needed."""

        def _connect() -> sqlite3.Connection:
            if self._database != ":memory:":
                Path(self._database).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._database, check_same_thread=False)
            conn.executescript(_SCHEMA)
            return conn

        try:
            self._conn = await asyncio.to_thread(_connect)
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open {self._database}: {exc}") from exc
        logger.info("sqlite.connected", database=self._database)

    async def close(self) -> None:
        if self._conn is not None:
            await asyncio.to_thread(self._conn.close)
            self._conn = None
            logger.info("sqlite.closed", database=self._database)

    async def _execute(self, query: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        if self._conn is None:
            await self.connect()
        conn = self._conn
        assert conn is not None

        def _exec() -> list[tuple[Any, ...]]:
            with conn:
                return conn.execute(query, params).fetchall()

        try:
            return await asyncio.to_thread(_exec)
        except sqlite3.Error as exc:
            raise StorageError(str(exc), details={"query": query}) from exc

    # -- commits --------------------------------------------------------------

    async def get_commit(self, project: Project, sha: str) -> Commit | None:
        rows = await self._execute(
            f"SELECT {_COMMIT_COLUMNS} FROM commits WHERE project = ? AND sha = ?",  # noqa: S608
            (project.slug, sha),
        )
        if not rows:
            return None
        slug, sha, author, date, message, status, output, build_date = rows[0]
        return Commit(
            project=slug,
            sha=sha,
            author=author,
            date=_from_iso(date),
            message=message,
            status=CommitStatus(status),
            output=output,
            build_date=_from_iso(build_date),
        )

    async def init_commit(
        self,
        project: Project,
        sha: str,
        author: str,
        date: datetime,
        message: str,
    ) -> Commit:
        commit = Commit(
            project=project.slug, sha=sha, author=author, date=date, message=message
        )
        await self._execute(
            f"INSERT INTO commits ({_COMMIT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, '', NULL) "  # noqa: S608
            "ON CONFLICT(project, sha) DO UPDATE SET author = excluded.author, "
            "date = excluded.date, message = excluded.message, status = excluded.status, "
            "output = '', build_date = NULL",
            (project.slug, sha, author, _iso(date), message, CommitStatus.PENDING.value),
        )
        return commit

    async def update_commit(self, commit: Commit) -> None:
        await self._execute(
            "UPDATE commits SET status = ?, output = ?, build_date = ? "
            "WHERE project = ? AND sha = ?",
            (
                commit.status.value,
                commit.output,
                _iso(commit.build_date),
                commit.project,
                commit.sha,
            ),
        )

    # -- projects -------------------------------------------------------------

    async def update_project(self, project: Project) -> None:
        await self._execute(
            "INSERT INTO project (slug, name, repository, branch, command, url_pattern, building) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) ON CONFLICT(slug) DO UPDATE SET "
            "name = excluded.name, repository = excluded.repository, "
            "branch = excluded.branch, command = excluded.command, "
            "url_pattern = excluded.url_pattern, building = excluded.building",
            (
                project.slug,
                project.name,
                project.repository,
                project.branch,
                project.command,
                project.url_pattern,
                int(project.building),
            ),
        )

    async def get_project(self, slug: str) -> Project | None:
        rows = await self._execute(
            "SELECT slug, name, repository, branch, command, url_pattern, building "
            "FROM project WHERE slug = ?",
            (slug,),
        )
        if not rows:
            return None
        slug, name, repository, branch, command, url_pattern, building = rows[0]
        return Project(
            slug=slug,
            name=name,
            repository=repository,
            branch=branch,
            command=command,
            url_pattern=url_pattern,
            building=bool(building),
        )
