"""Persistence collaborators for projects and commits."""
from __future__ import annotations

from tremor.storage.base import Storage
from tremor.storage.memory import InMemoryStorage
from tremor.storage.sqlite import SQLiteStorage

__all__ = ["InMemoryStorage", "SQLiteStorage", "Storage"]
