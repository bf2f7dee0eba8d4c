"""Tests for storage/: InMemoryStorage and SQLiteStorage share one contract."""
from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path

import pytest

from tremor.core.constants import CommitStatus
from tremor.core.types import Project
from tremor.storage.base import Storage
from tremor.storage.memory import InMemoryStorage
from tremor.storage.sqlite import SQLiteStorage

WHEN = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
async def any_storage(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncGenerator[Storage, None]:
    if request.param == "memory":
        store: Storage = InMemoryStorage()
    else:
        store = SQLiteStorage(tmp_path / "tremor.db")
        await store.connect()
    yield store
    await store.close()


async def test_missing_commit_is_none(any_storage: Storage, project: Project) -> None:
    assert await any_storage.get_commit(project, "nope") is None


async def test_init_commit_is_pending(any_storage: Storage, project: Project) -> None:
    commit = await any_storage.init_commit(project, "abc", "Jane", WHEN, "msg")
    assert commit.status == CommitStatus.PENDING
    assert commit.project == "demo-app"

    stored = await any_storage.get_commit(project, "abc")
    assert stored is not None
    assert stored.status == CommitStatus.PENDING
    assert stored.author == "Jane"
    assert stored.date == WHEN


async def test_update_commit_persists_outcome(any_storage: Storage, project: Project) -> None:
    commit = await any_storage.init_commit(project, "abc", "Jane", WHEN, "msg")
    commit.status = CommitStatus.FAILED
    commit.output = "Build failed"
    commit.build_date = WHEN
    await any_storage.update_commit(commit)

    stored = await any_storage.get_commit(project, "abc")
    assert stored is not None
    assert stored.status == CommitStatus.FAILED
    assert stored.output == "Build failed"
    assert stored.build_date == WHEN


async def test_init_commit_resets_a_built_commit(any_storage: Storage, project: Project) -> None:
    commit = await any_storage.init_commit(project, "abc", "Jane", WHEN, "msg")
    commit.status = CommitStatus.SUCCESS
    commit.output = "ok"
    await any_storage.update_commit(commit)

    await any_storage.init_commit(project, "abc", "Jane", WHEN, "msg")
    stored = await any_storage.get_commit(project, "abc")
    assert stored is not None
    assert stored.status == CommitStatus.PENDING
    assert stored.output == ""


async def test_commits_are_scoped_per_project(any_storage: Storage, project: Project) -> None:
    other = Project(name="Other", repository="r")
    await any_storage.init_commit(project, "abc", "Jane", WHEN, "msg")
    assert await any_storage.get_commit(other, "abc") is None


async def test_update_project_round_trip(any_storage: Storage, project: Project) -> None:
    await any_storage.update_project(project)
    project.building = True
    await any_storage.update_project(project)

    stored = await any_storage.get_project("demo-app")
    assert stored is not None
    assert stored.name == "Demo App"
    assert stored.branch == "main"
    assert stored.building is True
    assert await any_storage.get_project("unknown") is None


async def test_memory_storage_returns_copies(project: Project) -> None:
    store = InMemoryStorage()
    commit = await store.init_commit(project, "abc", "Jane", WHEN, "msg")
    commit.status = CommitStatus.SUCCESS
    stored = await store.get_commit(project, "abc")
    assert stored is not None and stored.status == CommitStatus.PENDING


async def test_sqlite_persists_across_connections(tmp_path: Path, project: Project) -> None:
    path = tmp_path / "nested" / "tremor.db"
    first = SQLiteStorage(path)
    await first.connect()
    await first.init_commit(project, "abc", "Jane", WHEN, "msg")
    await first.close()

    second = SQLiteStorage(path)
    await second.connect()
    assert await second.get_commit(project, "abc") is not None
    await second.close()


async def test_sqlite_connects_lazily(project: Project) -> None:
    store = SQLiteStorage()
    assert await store.get_commit(project, "abc") is None
    await store.close()
