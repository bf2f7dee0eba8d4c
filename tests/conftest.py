"""Shared test fixtures."""
from __future__ import annotations

import pytest

from tremor.core.types import Project
from tremor.storage.memory import InMemoryStorage


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def project() -> Project:
    return Project(
        name="Demo App",
        repository="https://example.com/demo.git",
        branch="main",
        command="make test",
    )
