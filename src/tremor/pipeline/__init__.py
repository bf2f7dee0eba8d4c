"""The build pipeline: request carrier, phase sequencer and build phases."""
from __future__ import annotations

from tremor.pipeline.guard import BuildGuard
from tremor.pipeline.phases import BuildPhases
from tremor.pipeline.pipeline import BuildPipeline, PhaseHandler
from tremor.pipeline.request import BuildRequest

__all__ = [
    "BuildGuard",
    "BuildPhases",
    "BuildPipeline",
    "BuildRequest",
    "PhaseHandler",
]
