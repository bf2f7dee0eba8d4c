"""BuildPipeline: three ordered phase groups with a halt protocol.

Handlers are registered per :class:`PhaseGroup` with an integer priority.
Within a group they run in ascending priority, ties broken by registration
order. A handler stops the pipeline by calling :meth:`BuildRequest.halt`;
the remaining handlers of that group and every later group are skipped.
Finalizers run once the pipeline is over, whether it completed, halted or
raised.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from tremor.core.constants import BuildState, PhaseGroup
from tremor.pipeline.request import BuildRequest

logger = structlog.get_logger(__name__)

PhaseHandler = Callable[[BuildRequest], Awaitable[None]]


@dataclass
class _Registration:
    priority: int
    order: int
    name: str
    handler: PhaseHandler


class BuildPipeline:
    def __init__(self) -> None:
        self._groups: dict[PhaseGroup, list[_Registration]] = {
            group: [] for group in PhaseGroup
        }
        self._finalizers: list[PhaseHandler] = []
        self._registered = 0

    def __repr__(self) -> str:
        counts = ", ".join(f"{g.value}={len(r)}" for g, r in self._groups.items())
        return f"BuildPipeline({counts})"

    def add_handler(
        self,
        group: PhaseGroup,
        handler: PhaseHandler,
        priority: int = 0,
        name: str | None = None,
    ) -> BuildPipeline:
        """Register *handler* in *group* and return self for method chaining."""
        self._groups[group].append(
            _Registration(
                priority=priority,
                order=self._registered,
                name=name or getattr(handler, "__name__", repr(handler)),
                handler=handler,
            )
        )
        self._registered += 1
        return self

    def add_finalizer(self, finalizer: PhaseHandler) -> BuildPipeline:
        self._finalizers.append(finalizer)
        return self

    def handlers(self, group: PhaseGroup) -> list[str]:
        """Names of the handlers of *group* in execution order."""
        return [r.name for r in self._ordered(group)]

    def _ordered(self, group: PhaseGroup) -> list[_Registration]:
        return sorted(self._groups[group], key=lambda r: (r.priority, r.order))

    async def run_group(self, group: PhaseGroup, request: BuildRequest) -> bool:
        """Run every handler of *group*; return ``False`` if the request halted."""
        for registration in self._ordered(group):
            if request.halted:
                break
            await registration.handler(request)
            if request.halted:
                logger.info(
                    "pipeline_halted",
                    project=request.project.slug,
                    group=group.value,
                    handler=registration.name,
                    reason=request.notes[-1] if request.notes else None,
                )
        return not request.halted

    async def run(
        self,
        request: BuildRequest,
        on_build_start: PhaseHandler | None = None,
    ) -> BuildRequest:
        """Run the pre-build, build and post-build groups in order.

        Args:
            request: The build request to drive.
            on_build_start: Awaited after pre-build succeeds, right before
                the build group.

        Raises:
            Whatever a handler raises; finalizers still run.
        """
        try:
            request.state = BuildState.SYNCING
            proceed = await self.run_group(PhaseGroup.PRE_BUILD, request)
            request.state = BuildState.DECIDED
            if not proceed:
                return request

            if on_build_start is not None:
                await on_build_start(request)

            request.state = BuildState.EXECUTING
            if not await self.run_group(PhaseGroup.BUILD, request):
                return request
            request.state = BuildState.CLASSIFIED

            if not await self.run_group(PhaseGroup.POST_BUILD, request):
                return request
            request.state = BuildState.NOTIFIED
            return request
        finally:
            for finalizer in self._finalizers:
                await finalizer(request)
            request.state = BuildState.DONE
