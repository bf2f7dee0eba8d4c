"""tremor: a lightweight continuous-integration build engine."""

from tremor.__version__ import __version__
from tremor.core.config import GitCommands, TremorConfig
from tremor.core.constants import BuildFlag, BuildState, CommitStatus, OutputChannel, PhaseGroup
from tremor.core.exceptions import (
    BuildError,
    ConfigurationError,
    ExecutionError,
    ProjectNotFoundError,
    StorageError,
    TremorError,
)
from tremor.core.types import Commit, CommitInfo, ProcessResult, Project
from tremor.notifiers import LogNotifier, Notifier, SlackNotifier, WebhookNotifier
from tremor.orchestrator import Orchestrator
from tremor.pipeline import BuildGuard, BuildPhases, BuildPipeline, BuildRequest
from tremor.process import ProcessRunner
from tremor.storage import InMemoryStorage, SQLiteStorage, Storage
from tremor.sync import RevisionSynchronizer
from tremor.utils.logging import build_context, configure_logging, get_logger

__all__ = [
    "__version__",
    "BuildError",
    "BuildFlag",
    "BuildGuard",
    "BuildPhases",
    "BuildPipeline",
    "BuildRequest",
    "BuildState",
    "Commit",
    "CommitInfo",
    "CommitStatus",
    "ConfigurationError",
    "ExecutionError",
    "GitCommands",
    "InMemoryStorage",
    "LogNotifier",
    "Notifier",
    "Orchestrator",
    "OutputChannel",
    "PhaseGroup",
    "ProcessResult",
    "ProcessRunner",
    "Project",
    "ProjectNotFoundError",
    "RevisionSynchronizer",
    "SQLiteStorage",
    "SlackNotifier",
    "Storage",
    "StorageError",
    "TremorError",
    "WebhookNotifier",
    "build_context",
    "configure_logging",
    "get_logger",
]
