"""Bring a project's working copy to an exact revision."""
from __future__ import annotations

from tremor.sync.commands import METADATA_FORMAT, GitCommandBuilder
from tremor.sync.synchronizer import RevisionSynchronizer, resolve_head

__all__ = [
    "METADATA_FORMAT",
    "GitCommandBuilder",
    "RevisionSynchronizer",
    "resolve_head",
]
