from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tremor.core.constants import CommitStatus

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase *text* and collapse every run of non-alphanumerics into ``-``."""
    slug = _SLUG_INVALID.sub("-", text.lower()).strip("-")
    return slug or "n-a"


class Project(BaseModel):
    """A buildable project: a repository, a tracked branch and a build script.

    ``notifiers`` holds :class:`~tremor.notifiers.base.Notifier` instances and
    is never serialized. ``building`` mirrors the state held by
    :class:`~tremor.pipeline.guard.BuildGuard`; it is informational only.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    slug: str = ""
    repository: str = ""
    branch: str = "master"
    command: str = "phpunit"
    url_pattern: str | None = None
    """Link template for a commit, with a ``{commit}`` placeholder."""
    notifiers: list[Any] = Field(default_factory=list, exclude=True)
    building: bool = False

    @model_validator(mode="after")
    def _derive_slug(self) -> Project:
        if not self.slug:
            self.slug = slugify(self.name)
        return self

    def add_notifier(self, notifier: Any) -> Project:
        """Register a notifier and return self for method chaining."""
        self.notifiers.append(notifier)
        return self

    def commit_url(self, sha: str) -> str | None:
        if not self.url_pattern:
            return None
        return self.url_pattern.replace("{commit}", sha)

    def __str__(self) -> str:
        return self.name


class CommitInfo(BaseModel):
    """Metadata of a single revision, as read from the repository."""

    sha: str
    author: str
    date: datetime
    message: str


class Commit(BaseModel):
    project: str
    """Slug of the owning project."""
    sha: str
    author: str = ""
    date: datetime | None = None
    message: str = ""
    status: CommitStatus = CommitStatus.PENDING
    output: str = ""
    build_date: datetime | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def is_built(self) -> bool:
        return self.status != CommitStatus.PENDING

    @property
    def is_successful(self) -> bool:
        return self.status == CommitStatus.SUCCESS

    @property
    def status_label(self) -> str:
        return {
            CommitStatus.PENDING: "building",
            CommitStatus.SUCCESS: "succeeded",
            CommitStatus.FAILED: "failed",
        }[self.status]


class ProcessResult(BaseModel):
    """Outcome of one external command."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    """``None`` when the process was killed after a timeout."""
    timed_out: bool = False
