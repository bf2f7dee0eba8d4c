from __future__ import annotations

import asyncio

import structlog

from tremor.core.types import Project

logger = structlog.get_logger(__name__)


class BuildGuard:
    """Atomic "is this project building" indicator, keyed by project slug.

    ``try_acquire`` checks and sets under a single lock so two concurrent
    builds of the same project cannot both observe it as idle. The
    ``Project.building`` attribute is kept in sync for display purposes.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._building: set[str] = set()

    def __repr__(self) -> str:
        return f"BuildGuard(building={sorted(self._building)})"

    def is_building(self, slug: str) -> bool:
        return slug in self._building

    async def try_acquire(self, project: Project) -> bool:
        async with self._lock:
            if project.slug in self._building:
                return False
            self._building.add(project.slug)
            project.building = True
        logger.debug("guard_acquired", project=project.slug)
        return True

    async def release(self, project: Project) -> None:
        async with self._lock:
            self._building.discard(project.slug)
            project.building = False
        logger.debug("guard_released", project=project.slug)
