from __future__ import annotations

import os
from pathlib import Path
from string import Formatter
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from tremor.core.constants import DEFAULT_TIMEOUT_SECONDS
from tremor.core.exceptions import ConfigurationError

TEMPLATE_PLACEHOLDERS = frozenset(
    {"repository", "directory", "branch", "local_branch", "revision", "format"}
)


class GitCommands(BaseModel):
    """Argument-vector templates for every git call made during synchronization.

    Each template is a list of argv tokens (without the git binary itself).
    ``{placeholder}`` markers are substituted token by token, so values are
    never re-parsed by a shell. Known placeholders: ``repository``,
    ``directory``, ``branch`` (the remote ref, e.g. ``origin/main``),
    ``local_branch``, ``revision`` and ``format``.
    """

    clone: list[str] = Field(
        default_factory=lambda: [
            "clone", "--progress", "--recursive", "{repository}", "{directory}",
            "--branch", "{local_branch}",
        ]
    )
    fetch: list[str] = Field(default_factory=lambda: ["fetch", "origin"])
    checkout: list[str] = Field(default_factory=lambda: ["checkout", "-q", "-f", "{branch}"])
    submodules: list[str] = Field(
        default_factory=lambda: ["submodule", "update", "--init", "--recursive"]
    )
    reset: list[str] = Field(default_factory=lambda: ["reset", "--hard", "{revision}"])
    show: list[str] = Field(
        default_factory=lambda: ["show", "-s", "--pretty=format:{format}", "{revision}"]
    )

    @field_validator("clone", "fetch", "checkout", "submodules", "reset", "show")
    @classmethod
    def _known_placeholders(cls, tokens: list[str]) -> list[str]:
        if not tokens:
            raise ValueError("git command template must not be empty")
        for token in tokens:
            for _, name, _, _ in Formatter().parse(token):
                if name is not None and name not in TEMPLATE_PLACEHOLDERS:
                    raise ValueError(f"unknown placeholder {{{name}}} in {token!r}")
        return tokens


class TremorConfig(BaseModel):
    build_dir: Path = Field(default_factory=lambda: Path.home() / ".tremor" / "builds")
    git_path: str = "git"
    timeout: int = Field(default=DEFAULT_TIMEOUT_SECONDS, ge=1, le=86400)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    git_commands: GitCommands = Field(default_factory=GitCommands)

    @classmethod
    def from_env(cls) -> TremorConfig:
        """Create a :class:`TremorConfig` from ``TREMOR_*`` environment variables.

        Reads the following env vars (all optional):

        * ``TREMOR_BUILD_DIR`` → ``build_dir``
        * ``TREMOR_GIT_PATH`` → ``git_path``
        * ``TREMOR_TIMEOUT`` → ``timeout`` (integer seconds)
        * ``TREMOR_LOG_LEVEL`` → ``log_level``

        Any variable that is not set or is empty is left at its default value.

        Raises:
            ConfigurationError: If ``TREMOR_TIMEOUT`` is not an integer.
        """
        kwargs: dict[str, Any] = {}

        build_dir = os.environ.get("TREMOR_BUILD_DIR")
        if build_dir:
            kwargs["build_dir"] = Path(build_dir).expanduser()

        git_path = os.environ.get("TREMOR_GIT_PATH")
        if git_path:
            kwargs["git_path"] = git_path

        timeout_str = os.environ.get("TREMOR_TIMEOUT")
        if timeout_str:
            try:
                kwargs["timeout"] = int(timeout_str)
            except ValueError as exc:
                raise ConfigurationError(
                    f"TREMOR_TIMEOUT must be an integer, got {timeout_str!r}"
                ) from exc

        log_level = os.environ.get("TREMOR_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        return cls(**kwargs)
