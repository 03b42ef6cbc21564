"""Catalog service: reads the relational catalog and builds grid indexes."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from s2s.catalog.grid import CatalogItem, GridIndex, LevelInfo, SubjectInfo
from s2s.database import get_session_factory
from s2s.db.models import ComplexityLevel, Subject, Video
from s2s.errors import NotFound, RemoteError

logger = structlog.get_logger()


def _item(video: Video) -> CatalogItem:
    return CatalogItem(
        id=video.id,
        subject=video.subject,
        complexity_level=video.complexity_level,
        title=video.title,
        duration_seconds=video.duration_seconds,
        description=video.description,
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
    )


class CatalogService:
    """Read-only access to subjects, complexity levels and videos."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_subjects(self) -> list[SubjectInfo]:
        """Active subjects ordered by ``order``."""
        try:
            result = await self.db.execute(
                select(Subject).where(Subject.is_active.is_(True)).order_by(Subject.order)
            )
        except SQLAlchemyError as e:
            raise RemoteError(f"Catalog read failed: {e}") from e
        return [
            SubjectInfo(id=s.id, name=s.name, order=s.order, description=s.description)
            for s in result.scalars()
        ]

    async def list_levels(self) -> list[LevelInfo]:
        """Active complexity levels ordered by ``level``."""
        try:
            result = await self.db.execute(
                select(ComplexityLevel)
                .where(ComplexityLevel.is_active.is_(True))
                .order_by(ComplexityLevel.level)
            )
        except SQLAlchemyError as e:
            raise RemoteError(f"Catalog read failed: {e}") from e
        return [
            LevelInfo(
                id=lv.id,
                level=lv.level,
                name=lv.name,
                order=lv.order,
                description=lv.description,
                requirements=lv.requirements,
            )
            for lv in result.scalars()
        ]

    async def list_videos(self) -> list[CatalogItem]:
        """Active videos in a stable order (creation time, then id)."""
        try:
            result = await self.db.execute(
                select(Video)
                .where(Video.is_active.is_(True))
                .order_by(Video.created_at, Video.id)
            )
        except SQLAlchemyError as e:
            raise RemoteError(f"Catalog read failed: {e}") from e
        return [_item(v) for v in result.scalars()]

    async def get_video(self, video_id: str) -> CatalogItem:
        """Fetch one active video. Raises NotFound."""
        try:
            video = await self.db.get(Video, video_id)
        except SQLAlchemyError as e:
            raise RemoteError(f"Catalog read failed: {e}") from e
        if video is None or not video.is_active:
            msg = f"Video not found: {video_id}"
            raise NotFound(msg)
        return _item(video)

    async def build_grid(self) -> GridIndex:
        """Full scan of the catalog into a fresh grid index."""
        subjects = await self.list_subjects()
        levels = await self.list_levels()
        videos = await self.list_videos()
        grid = GridIndex.build(subjects, levels, videos)
        logger.info(
            "grid_built",
            subjects=len(grid.subjects),
            levels=grid.total_levels,
            videos=grid.video_count,
            collisions=len(grid.collisions),
        )
        return grid


class GridCache:
    """Holds the current grid index; refreshes replace it wholesale.

    Each refresh takes a generation number when it starts. A refresh only
    installs its result if no later refresh has installed one already, so a
    slow, older scan can never overwrite a newer index.
    """

    def __init__(self, loader: Callable[[], Awaitable[GridIndex]]) -> None:
        self._loader = loader
        self._grid: GridIndex | None = None
        self._started = 0
        self._installed = 0
        self._lock = asyncio.Lock()

    @property
    def current(self) -> GridIndex | None:
        return self._grid

    @property
    def generation(self) -> int:
        return self._installed

    async def get(self) -> GridIndex:
        """Return the current index, loading it on first use."""
        grid = self._grid
        if grid is None:
            async with self._lock:
                grid = self._grid
                if grid is None:
                    grid = await self.refresh()
        return grid

    async def refresh(self) -> GridIndex:
        """Rebuild the index. Returns whichever index is current afterwards."""
        self._started += 1
        generation = self._started
        grid = await self._loader()
        current = self._grid
        if current is None or generation > self._installed:
            self._grid = grid
            self._installed = generation
            return grid
        logger.info("grid_refresh_superseded", generation=generation, current=self._installed)
        return current


async def load_grid() -> GridIndex:
    """Loader for the process-wide cache: one session per full scan."""
    async with get_session_factory()() as db:
        return await CatalogService(db).build_grid()


_grid_cache: GridCache | None = None


def init_grid_cache(loader: Callable[[], Awaitable[GridIndex]] = load_grid) -> GridCache:
    global _grid_cache  # noqa: PLW0603
    _grid_cache = GridCache(loader)
    return _grid_cache


def get_grid_cache() -> GridCache:
    """Get the grid cache (FastAPI dependency)."""
    if _grid_cache is None:
        msg = "Grid cache not initialized. Call init_grid_cache() first."
        raise RuntimeError(msg)
    return _grid_cache
