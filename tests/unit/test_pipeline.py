"""Tests for pipeline/pipeline.py and pipeline/request.py."""
from __future__ import annotations

import pytest

from tremor.core.constants import BuildFlag, BuildState, PhaseGroup
from tremor.core.types import Project
from tremor.pipeline.pipeline import BuildPipeline
from tremor.pipeline.request import BuildRequest


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _recorder(log: list[str], name: str, halt: bool = False):
    async def handler(request: BuildRequest) -> None:
        log.append(name)
        if halt:
            request.halt(f"{name} halted")

    handler.__name__ = name
    return handler


def _request(project: Project) -> BuildRequest:
    return BuildRequest(project=project)


# ---------------------------------------------------------------------------
# BuildRequest
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("revision", [None, "", "latest", "HEAD"])
def test_request_normalizes_tip_revisions(project: Project, revision: str | None) -> None:
    assert BuildRequest(project=project, revision=revision).revision is None


def test_request_keeps_concrete_revision(project: Project) -> None:
    assert BuildRequest(project=project, revision="abc123").revision == "abc123"


def test_request_flags(project: Project) -> None:
    request = BuildRequest(project=project, flags=BuildFlag.FORCE | BuildFlag.LOCAL)
    assert request.has_flag(BuildFlag.FORCE)
    assert request.has_flag(BuildFlag.LOCAL)
    assert not request.has_flag(BuildFlag.SILENT)


async def test_request_emit_without_callback_is_noop(project: Project) -> None:
    await _request(project).emit("out", "ignored")


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def test_add_handler_returns_self() -> None:
    pipeline = BuildPipeline()
    assert pipeline.add_handler(PhaseGroup.BUILD, _recorder([], "x")) is pipeline


async def test_handlers_run_in_ascending_priority(project: Project) -> None:
    log: list[str] = []
    pipeline = (
        BuildPipeline()
        .add_handler(PhaseGroup.PRE_BUILD, _recorder(log, "late"), priority=50)
        .add_handler(PhaseGroup.PRE_BUILD, _recorder(log, "early"), priority=-10)
        .add_handler(PhaseGroup.PRE_BUILD, _recorder(log, "middle"), priority=0)
    )
    await pipeline.run(_request(project))
    assert log == ["early", "middle", "late"]
    assert pipeline.handlers(PhaseGroup.PRE_BUILD) == ["early", "middle", "late"]


async def test_priority_ties_keep_registration_order(project: Project) -> None:
    log: list[str] = []
    pipeline = BuildPipeline()
    for name in ("a", "b", "c"):
        pipeline.add_handler(PhaseGroup.BUILD, _recorder(log, name), priority=5)
    await pipeline.run(_request(project))
    assert log == ["a", "b", "c"]


async def test_groups_run_in_fixed_order(project: Project) -> None:
    log: list[str] = []
    pipeline = (
        BuildPipeline()
        .add_handler(PhaseGroup.POST_BUILD, _recorder(log, "post"))
        .add_handler(PhaseGroup.BUILD, _recorder(log, "build"))
        .add_handler(PhaseGroup.PRE_BUILD, _recorder(log, "pre"))
    )
    request = await pipeline.run(_request(project))
    assert log == ["pre", "build", "post"]
    assert request.state == BuildState.DONE
    assert request.halted is False


# ---------------------------------------------------------------------------
# Halting
# ---------------------------------------------------------------------------


async def test_halt_skips_rest_of_group_and_later_groups(project: Project) -> None:
    log: list[str] = []
    pipeline = (
        BuildPipeline()
        .add_handler(PhaseGroup.PRE_BUILD, _recorder(log, "guard", halt=True), priority=0)
        .add_handler(PhaseGroup.PRE_BUILD, _recorder(log, "sync"), priority=100)
        .add_handler(PhaseGroup.BUILD, _recorder(log, "build"))
        .add_handler(PhaseGroup.POST_BUILD, _recorder(log, "notify"))
    )
    request = await pipeline.run(_request(project))
    assert log == ["guard"]
    assert request.halted is True
    assert request.notes == ["guard halted"]


async def test_halt_in_build_skips_post_build(project: Project) -> None:
    log: list[str] = []
    pipeline = (
        BuildPipeline()
        .add_handler(PhaseGroup.BUILD, _recorder(log, "build", halt=True))
        .add_handler(PhaseGroup.POST_BUILD, _recorder(log, "notify"))
    )
    await pipeline.run(_request(project))
    assert log == ["build"]


async def test_on_build_start_runs_only_when_pre_build_passes(project: Project) -> None:
    started: list[str] = []

    async def on_start(request: BuildRequest) -> None:
        started.append(request.state.value)

    passing = BuildPipeline().add_handler(PhaseGroup.PRE_BUILD, _recorder([], "ok"))
    await passing.run(_request(project), on_build_start=on_start)
    assert started == ["decided"]

    halting = BuildPipeline().add_handler(PhaseGroup.PRE_BUILD, _recorder([], "no", halt=True))
    await halting.run(_request(project), on_build_start=on_start)
    assert started == ["decided"]


# ---------------------------------------------------------------------------
# Finalizers
# ---------------------------------------------------------------------------


async def test_finalizers_run_after_completion_and_halt(project: Project) -> None:
    log: list[str] = []
    pipeline = (
        BuildPipeline()
        .add_handler(PhaseGroup.PRE_BUILD, _recorder(log, "guard", halt=True))
        .add_finalizer(_recorder(log, "release"))
    )
    await pipeline.run(_request(project))
    assert log == ["guard", "release"]


async def test_finalizers_run_when_handler_raises(project: Project) -> None:
    log: list[str] = []

    async def explode(request: BuildRequest) -> None:
        raise RuntimeError("sync exploded")

    pipeline = (
        BuildPipeline()
        .add_handler(PhaseGroup.PRE_BUILD, explode)
        .add_handler(PhaseGroup.BUILD, _recorder(log, "build"))
        .add_finalizer(_recorder(log, "release"))
    )
    request = _request(project)
    with pytest.raises(RuntimeError, match="sync exploded"):
        await pipeline.run(request)
    assert log == ["release"]
    assert request.state == BuildState.DONE


async def test_states_progress_through_phases(project: Project) -> None:
    seen: list[BuildState] = []

    async def observe(request: BuildRequest) -> None:
        seen.append(request.state)

    pipeline = (
        BuildPipeline()
        .add_handler(PhaseGroup.PRE_BUILD, observe)
        .add_handler(PhaseGroup.BUILD, observe)
        .add_handler(PhaseGroup.POST_BUILD, observe)
        .add_finalizer(observe)
    )
    await pipeline.run(_request(project))
    assert seen == [
        BuildState.SYNCING,
        BuildState.EXECUTING,
        BuildState.CLASSIFIED,
        BuildState.NOTIFIED,
    ]
