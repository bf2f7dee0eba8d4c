from __future__ import annotations

from typing import Any


class TremorError(Exception):
    """Base exception for all tremor errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"clone_failed"``).
        details: Arbitrary key/value context about the error.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(TremorError): ...


class ProjectNotFoundError(TremorError): ...


class StorageError(TremorError): ...


class ExecutionError(TremorError):
    """The external process could not be spawned at all.

    A process that starts and exits non-zero is *not* an execution error;
    it is reported through :attr:`ProcessResult.success`.
    """


class BuildError(TremorError):
    """Synchronization of a project's working copy failed.

    ``details`` always carries the ``project`` slug and, when known, the
    synchronization ``step`` that failed.
    """

    def __init__(
        self,
        message: str,
        project: str,
        step: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = {"project": project, **(details or {})}
        if step is not None:
            merged["step"] = step
        super().__init__(message, code=f"{step}_failed" if step else None, details=merged)
        self.project = project
        self.step = step
