"""Structured git command construction from :class:`GitCommands` templates."""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from tremor.core.config import GitCommands
from tremor.core.exceptions import ConfigurationError
from tremor.core.types import Project

GitCommandName = Literal["clone", "fetch", "checkout", "submodules", "reset", "show"]

# sha, author name, committer date (ISO-like), subject; one per line.
METADATA_FORMAT = "%H%n%an%n%ci%n%s%n"


class GitCommandBuilder:
    """Renders git templates into argument vectors for one project checkout."""

    def __init__(self, git_path: str = "git", commands: GitCommands | None = None) -> None:
        self._git_path = git_path
        self._commands = commands or GitCommands()

    def __repr__(self) -> str:
        return f"GitCommandBuilder(git_path={self._git_path!r})"

    def build(
        self,
        name: GitCommandName,
        project: Project,
        directory: Path,
        revision: str = "",
    ) -> list[str]:
        """Return the full argv (git binary first) for command *name*.

        Raises:
            ConfigurationError: If *name* is not a known template.
        """
        template = getattr(self._commands, name, None)
        if template is None:
            raise ConfigurationError(f"Unknown git command template {name!r}")

        values = {
            "repository": project.repository,
            "directory": str(directory),
            "branch": f"origin/{project.branch}",
            "local_branch": project.branch,
            "revision": revision,
            "format": METADATA_FORMAT,
        }
        return [self._git_path, *(token.format_map(values) for token in template)]
