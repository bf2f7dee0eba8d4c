from __future__ import annotations

from dataclasses import dataclass, field

from tremor.core.constants import BuildFlag, BuildState, HEAD_REVISION
from tremor.core.types import Commit, Project
from tremor.process.runner import OutputCallback, emit_output


@dataclass
class BuildRequest:
    """Per-invocation carrier threaded through every pipeline phase.

    Created fresh by each ``build()`` call and discarded once the pipeline
    completes or halts; only the :class:`Commit` it produces is persisted.
    """

    project: Project
    revision: str | None = None
    flags: BuildFlag = BuildFlag.NONE
    callback: OutputCallback | None = None
    commit: Commit | None = None
    state: BuildState = BuildState.CREATED
    halted: bool = False
    holds_guard: bool = False
    """Set when this request acquired the project's building indicator."""
    notes: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.revision in ("", "latest", HEAD_REVISION):
            self.revision = None

    def has_flag(self, flag: BuildFlag) -> bool:
        return flag in self.flags

    def halt(self, reason: str) -> None:
        """Stop the pipeline; no later phase group runs."""
        self.halted = True
        self.notes.append(reason)

    async def emit(self, channel: str, text: str) -> None:
        await emit_output(self.callback, channel, text)
