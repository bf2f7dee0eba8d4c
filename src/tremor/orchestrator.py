"""Orchestrator: the single entry point for registering and building projects."""
from __future__ import annotations

import structlog

from tremor.core.config import TremorConfig
from tremor.core.constants import BUILD_START_MARKER, BuildFlag, OutputChannel
from tremor.core.exceptions import BuildError, ProjectNotFoundError
from tremor.core.types import Project
from tremor.pipeline.guard import BuildGuard
from tremor.pipeline.phases import BuildPhases
from tremor.pipeline.pipeline import BuildPipeline
from tremor.pipeline.request import BuildRequest
from tremor.process.runner import OutputCallback, ProcessRunner
from tremor.storage.base import Storage
from tremor.sync.synchronizer import RevisionSynchronizer
from tremor.utils.logging import build_context

logger = structlog.get_logger(__name__)


class Orchestrator:
    """Binds a project registry to a :class:`BuildPipeline`.

    Example::

        orchestrator = Orchestrator.from_config(TremorConfig.from_env(), InMemoryStorage())
        await orchestrator.add_project(Project(name="Twig", repository="https://..."))
        await orchestrator.build(orchestrator.get_project("twig"), flags=BuildFlag.FORCE)
    """

    def __init__(self, storage: Storage, pipeline: BuildPipeline) -> None:
        self._storage = storage
        self._pipeline = pipeline
        self._projects: dict[str, Project] = {}

    def __repr__(self) -> str:
        return f"Orchestrator(projects={len(self._projects)})"

    @classmethod
    def from_config(
        cls,
        config: TremorConfig,
        storage: Storage,
        guard: BuildGuard | None = None,
    ) -> Orchestrator:
        """Assemble the default runner, synchronizer, phases and pipeline."""
        runner = ProcessRunner(timeout=config.timeout)
        synchronizer = RevisionSynchronizer(
            runner,
            config.build_dir,
            git_path=config.git_path,
            commands=config.git_commands,
            timeout=config.timeout,
        )
        phases = BuildPhases(storage, synchronizer, runner, guard=guard, timeout=config.timeout)
        return cls(storage, phases.register(BuildPipeline()))

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #

    async def add_project(self, project: Project) -> None:
        """Persist *project* and register it under its slug."""
        await self._storage.update_project(project)
        self._projects[project.slug] = project
        logger.info("project_added", project=project.slug)

    def has_project(self, slug: str) -> bool:
        return slug in self._projects

    def get_project(self, slug: str) -> Project:
        """Return the registered project with *slug*.

        Raises:
            ProjectNotFoundError: If no project is registered under *slug*.
        """
        try:
            return self._projects[slug]
        except KeyError:
            raise ProjectNotFoundError(f'Project "{slug}" does not exist.') from None

    def get_projects(self) -> dict[str, Project]:
        return dict(self._projects)

    # ------------------------------------------------------------------ #
    # Building
    # ------------------------------------------------------------------ #

    async def build(
        self,
        project: Project,
        revision: str | None = None,
        flags: BuildFlag = BuildFlag.NONE,
        callback: OutputCallback | None = None,
    ) -> None:
        """Build *revision* of *project* (``None`` means the branch tip).

        The outcome is observable through the storage and the streamed
        *callback* (``callback(channel, text)``).

        Raises:
            BuildError: If the working copy cannot be synchronized; no
                commit is recorded in that case.
        """
        request = BuildRequest(project=project, revision=revision, flags=flags, callback=callback)
        with build_context(project.slug, request.revision):
            log = logger.bind(flags=str(flags))
            log.info("build_requested")
            try:
                await self._pipeline.run(request, on_build_start=self._announce)
            except BuildError as exc:
                log.warning("build_aborted", error=str(exc), step=exc.step)
                raise

            if request.halted:
                log.info("build_skipped", reason=request.notes[-1] if request.notes else None)
            elif request.commit is not None:
                log.info(
                    "build_finished", sha=request.commit.sha, status=request.commit.status.value
                )

    @staticmethod
    async def _announce(request: BuildRequest) -> None:
        if request.callback is not None:
            await request.emit(OutputChannel.OUT.value, BUILD_START_MARKER)
