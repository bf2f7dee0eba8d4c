from __future__ import annotations

from enum import Flag, StrEnum, auto

DEFAULT_TIMEOUT_SECONDS = 3600
HEAD_REVISION = "HEAD"
BUILD_SCRIPT_NAME = "tremor-run-tests.sh"
BUILD_START_MARKER = "BUILD START"


class BuildFlag(Flag):
    """Independent switches that modulate a single build."""

    NONE = 0
    FORCE = auto()
    """Bypass the "already building" and "already built" short-circuits."""
    LOCAL = auto()
    """Skip fetch and submodule update; build the working copy as-is."""
    SILENT = auto()
    """Do not run the notification phase."""


class CommitStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class OutputChannel(StrEnum):
    OUT = "out"
    ERR = "err"


class PhaseGroup(StrEnum):
    PRE_BUILD = "pre_build"
    BUILD = "build"
    POST_BUILD = "post_build"


class BuildState(StrEnum):
    CREATED = "created"
    SYNCING = "syncing"
    DECIDED = "decided"
    EXECUTING = "executing"
    CLASSIFIED = "classified"
    NOTIFIED = "notified"
    DONE = "done"
