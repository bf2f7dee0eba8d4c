"""The concrete build phases: guard, synchronize, execute, notify."""
from __future__ import annotations

from datetime import datetime, timezone

import structlog

from tremor.core.constants import (
    BUILD_SCRIPT_NAME,
    DEFAULT_TIMEOUT_SECONDS,
    BuildFlag,
    CommitStatus,
    PhaseGroup,
)
from tremor.core.exceptions import ExecutionError
from tremor.core.types import Commit, ProcessResult
from tremor.pipeline.guard import BuildGuard
from tremor.pipeline.pipeline import BuildPipeline
from tremor.pipeline.request import BuildRequest
from tremor.process.runner import ProcessRunner
from tremor.storage.base import Storage
from tremor.sync.synchronizer import RevisionSynchronizer

logger = structlog.get_logger(__name__)

CHECK_PRIORITY = 0
PREPARE_PRIORITY = 100

FAILURE_TEMPLATE = "Build failed\n\nOutput\n{stdout}\n\nError\n{stderr}"


def normalize_script(command: str) -> str:
    return command.replace("\r\n", "\n").replace("\r", "\n")


def classify(commit: Commit, result: ProcessResult, timeout: float) -> Commit:
    """Record the outcome of the build command on *commit*."""
    if result.success:
        commit.status = CommitStatus.SUCCESS
        commit.output = result.stdout
    else:
        stderr = result.stderr
        if result.timed_out:
            stderr += f"\nBuild timed out after {timeout:g} seconds and was killed.\n"
        commit.status = CommitStatus.FAILED
        commit.output = FAILURE_TEMPLATE.format(stdout=result.stdout, stderr=stderr)
    commit.build_date = datetime.now(timezone.utc)
    return commit


class BuildPhases:
    """Handlers wired into a :class:`BuildPipeline` by :meth:`register`.

    ============  ==========  ===========================================
    group         priority    handler
    ============  ==========  ===========================================
    pre_build     0           :meth:`check` (concurrency guard)
    pre_build     100         :meth:`prepare` (synchronize, dedupe)
    build         0           :meth:`build` (run and classify)
    post_build    0           :meth:`notify`
    (finalizer)               :meth:`release`
    ============  ==========  ===========================================
    """

    def __init__(
        self,
        storage: Storage,
        synchronizer: RevisionSynchronizer,
        runner: ProcessRunner,
        guard: BuildGuard | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        shell: str = "sh",
        script_name: str = BUILD_SCRIPT_NAME,
    ) -> None:
        self._storage = storage
        self._synchronizer = synchronizer
        self._runner = runner
        self._guard = guard or BuildGuard()
        self._timeout = timeout
        self._shell = shell
        self._script_name = script_name

    @property
    def guard(self) -> BuildGuard:
        return self._guard

    def register(self, pipeline: BuildPipeline) -> BuildPipeline:
        return (
            pipeline.add_handler(PhaseGroup.PRE_BUILD, self.check, CHECK_PRIORITY, "check")
            .add_handler(PhaseGroup.PRE_BUILD, self.prepare, PREPARE_PRIORITY, "prepare")
            .add_handler(PhaseGroup.BUILD, self.build, 0, "build")
            .add_handler(PhaseGroup.POST_BUILD, self.notify, 0, "notify")
            .add_finalizer(self.release)
        )

    # ------------------------------------------------------------------ #
    # pre_build
    # ------------------------------------------------------------------ #

    async def check(self, request: BuildRequest) -> None:
        project = request.project
        if await self._guard.try_acquire(project):
            request.holds_guard = True
            await self._storage.update_project(project)
            return
        if not request.has_flag(BuildFlag.FORCE):
            request.halt(f'Project "{project}" is already building.')
            return
        logger.warning("build_forced_while_building", project=project.slug)

    async def prepare(self, request: BuildRequest) -> None:
        project = request.project
        info = await self._synchronizer.synchronize(
            project,
            request.revision,
            local=request.has_flag(BuildFlag.LOCAL),
            callback=request.callback,
        )

        existing = await self._storage.get_commit(project, info.sha)
        if existing is not None and existing.is_built and not request.has_flag(BuildFlag.FORCE):
            request.halt(f'Commit "{info.sha}" of project "{project}" has already been built.')
            return

        request.commit = await self._storage.init_commit(
            project, info.sha, info.author, info.date, info.message
        )

    # ------------------------------------------------------------------ #
    # build
    # ------------------------------------------------------------------ #

    async def build(self, request: BuildRequest) -> None:
        commit = request.commit
        assert commit is not None, "prepare must attach a commit before build"
        directory = self._synchronizer.build_dir(request.project)
        script = directory / self._script_name
        script.write_text(normalize_script(request.project.command), encoding="utf-8", newline="")

        log = logger.bind(project=request.project.slug, sha=commit.sha)
        log.info("build_command_start", timeout=self._timeout)
        try:
            result = await self._runner.run(
                [self._shell, self._script_name],
                cwd=directory,
                timeout=self._timeout,
                callback=request.callback,
            )
        except ExecutionError as exc:
            log.error("build_command_spawn_failed", error=str(exc))
            result = ProcessResult(success=False, stderr=str(exc))

        classify(commit, result, self._timeout)
        await self._storage.update_commit(commit)
        log.info("build_command_end", status=commit.status.value, timed_out=result.timed_out)

    # ------------------------------------------------------------------ #
    # post_build
    # ------------------------------------------------------------------ #

    async def notify(self, request: BuildRequest) -> None:
        if request.has_flag(BuildFlag.SILENT):
            return
        commit = request.commit
        assert commit is not None
        for notifier in request.project.notifiers:
            try:
                delivered = await notifier.notify(commit)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "notifier_error",
                    project=request.project.slug,
                    notifier=type(notifier).__name__,
                    error=str(exc),
                )
                continue
            if not delivered:
                logger.warning(
                    "notifier_undelivered",
                    project=request.project.slug,
                    notifier=type(notifier).__name__,
                )

    async def release(self, request: BuildRequest) -> None:
        if not request.holds_guard:
            return
        await self._guard.release(request.project)
        request.holds_guard = False
        await self._storage.update_project(request.project)
