"""RevisionSynchronizer: clone, fetch, checkout, reset and describe a revision."""
from __future__ import annotations

import hashlib
from datetime import datetime
from pathlib import Path

import structlog

from tremor.core.config import GitCommands
from tremor.core.constants import DEFAULT_TIMEOUT_SECONDS, HEAD_REVISION, OutputChannel
from tremor.core.exceptions import BuildError, ExecutionError
from tremor.core.types import CommitInfo, Project, ProcessResult
from tremor.process.runner import OutputCallback, ProcessRunner, emit_output
from tremor.sync.commands import GitCommandBuilder, GitCommandName

logger = structlog.get_logger(__name__)

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def resolve_head(git_dir: Path) -> str | None:
    """Read the branch tip recorded in ``<git_dir>/HEAD``.

    A symbolic ``ref: refs/heads/...`` entry is followed one level; if the
    referenced file does not exist the tip is unresolvable and ``None`` is
    returned. A detached HEAD yields the hash it contains.
    """
    head_file = git_dir / "HEAD"
    if not head_file.is_file():
        return None
    revision = head_file.read_text(encoding="utf-8").strip()
    if revision.startswith("ref: "):
        ref_file = git_dir / revision[len("ref: "):].strip()
        if not ref_file.is_file():
            return None
        revision = ref_file.read_text(encoding="utf-8").strip()
    return revision or None


def parse_metadata(output: str) -> CommitInfo | None:
    """Parse the four-line ``git show`` metadata block, or ``None`` if malformed."""
    parts = output.strip().split("\n", 3)
    if len(parts) != 4:
        return None
    sha, author, date, message = (part.strip() for part in parts)
    try:
        when = datetime.strptime(date, _DATE_FORMAT)
    except ValueError:
        try:
            when = datetime.fromisoformat(date)
        except ValueError:
            return None
    return CommitInfo(sha=sha, author=author, date=when, message=message)


class RevisionSynchronizer:
    """Drives git so a project's working directory matches a requested revision.

    Every project/branch pair owns one working directory under *base_dir*,
    named after a stable hash of the repository URL and the branch.

    Args:
        runner: Executes the git commands.
        base_dir: Parent directory of all working copies.
        git_path: The git binary.
        commands: Optional overrides for the git command templates.
        timeout: Ceiling in seconds for each git command.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        base_dir: str | Path,
        git_path: str = "git",
        commands: GitCommands | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._runner = runner
        self._base_dir = Path(base_dir)
        self._builder = GitCommandBuilder(git_path, commands)
        self._timeout = timeout

    def __repr__(self) -> str:
        return f"RevisionSynchronizer(base_dir={str(self._base_dir)!r})"

    def build_dir(self, project: Project) -> Path:
        key = f"{project.repository}\n{project.branch}".encode("utf-8")
        return self._base_dir / hashlib.sha1(key).hexdigest()[:12]

    async def synchronize(
        self,
        project: Project,
        revision: str | None = None,
        local: bool = False,
        callback: OutputCallback | None = None,
    ) -> CommitInfo:
        """Bring the working copy of *project* to *revision* and describe it.

        Args:
            project: The project to synchronize.
            revision: A git revision, or ``None`` / ``"HEAD"`` for the tip
                of the tracked branch.
            local: Skip network synchronization (fetch and submodule update).
            callback: Receives the progress of every git command.

        Raises:
            BuildError: If any step fails; the message names the project.
        """
        directory = self.build_dir(project)
        directory.mkdir(parents=True, exist_ok=True)
        log = logger.bind(project=project.slug, directory=str(directory))

        if not (directory / ".git").exists():
            log.info("sync_clone", repository=project.repository, branch=project.branch)
            await self._git(
                "clone", project, directory, callback,
                f'Unable to clone repository for project "{project}".',
            )

        if not local:
            await self._git(
                "fetch", project, directory, callback,
                f'Unable to fetch repository for project "{project}".',
            )

        await self._git(
            "checkout", project, directory, callback,
            f'Unable to checkout branch "{project.branch}" for project "{project}".',
        )

        if not local:
            await self._git(
                "submodules", project, directory, callback,
                f'Unable to update submodules for project "{project}".',
            )

        if revision is None or revision == HEAD_REVISION:
            resolved = resolve_head(directory / ".git")
            if resolved is None:
                raise BuildError(
                    f'Unable to get HEAD for branch "{project.branch}" for project "{project}".',
                    project=project.slug,
                    step="resolve",
                )
            revision = resolved

        # git would read a leading dash as an option, not a revision.
        if revision.startswith("-"):
            log.warning("sync_revision_rejected", revision=revision)
            raise BuildError(
                f'Revision "{revision}" for project "{project}" does not exist.',
                project=project.slug,
                step="reset",
            )

        await self._git(
            "reset", project, directory, callback,
            f'Revision "{revision}" for project "{project}" does not exist.',
            revision=revision,
        )

        result = await self._git(
            "show", project, directory, callback,
            f'Unable to get logs for project "{project}".',
            revision=revision,
        )
        info = parse_metadata(result.stdout)
        if info is None:
            raise BuildError(
                f'Unable to get logs for project "{project}".',
                project=project.slug,
                step="show",
                details={"output": result.stdout},
            )
        log.info("sync_done", sha=info.sha, local=local)
        return info

    async def _git(
        self,
        name: GitCommandName,
        project: Project,
        directory: Path,
        callback: OutputCallback | None,
        message: str,
        revision: str = "",
    ) -> ProcessResult:
        argv = self._builder.build(name, project, directory, revision=revision)
        await emit_output(callback, OutputChannel.OUT.value, f'Running "{" ".join(argv)}"\n')
        try:
            result = await self._runner.run(
                argv, cwd=directory, timeout=self._timeout, callback=callback
            )
        except ExecutionError as exc:
            raise BuildError(message, project=project.slug, step=name) from exc
        if not result.success:
            logger.warning(
                "sync_step_failed",
                project=project.slug,
                step=name,
                exit_code=result.exit_code,
                timed_out=result.timed_out,
            )
            raise BuildError(
                message,
                project=project.slug,
                step=name,
                details={"stderr": result.stderr},
            )
        return result
