"""Catalog endpoints: the subject x level grid and single videos."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from s2s.catalog.grid import CatalogItem, GridIndex
from s2s.catalog.service import GridCache, get_grid_cache
from s2s.dependencies import get_current_user_id
from s2s.errors import NotFound

router = APIRouter(prefix="/api/v1/catalog", tags=["Catalog"])


class VideoResponse(BaseModel):
    id: str
    subject: str
    complexity_level: int
    title: str
    description: str
    duration_seconds: float
    video_url: str
    thumbnail_url: str


class SubjectRow(BaseModel):
    id: str
    name: str
    order: int
    max_level: int
    cells: dict[int, VideoResponse]


class LevelEntry(BaseModel):
    level: int
    name: str


class GridResponse(BaseModel):
    subjects: list[SubjectRow]
    levels: list[LevelEntry]
    total_levels: int
    video_count: int
    collisions: int


def _video(item: CatalogItem) -> VideoResponse:
    return VideoResponse(
        id=item.id,
        subject=item.subject,
        complexity_level=item.complexity_level,
        title=item.title,
        description=item.description,
        duration_seconds=item.duration_seconds,
        video_url=item.video_url,
        thumbnail_url=item.thumbnail_url,
    )


def _grid_response(grid: GridIndex) -> GridResponse:
    return GridResponse(
        subjects=[
            SubjectRow(
                id=s.id,
                name=s.name,
                order=s.order,
                max_level=grid.max_level(s.id),
                cells={lv: _video(item) for lv, item in sorted(grid.cells.get(s.id, {}).items())},
            )
            for s in grid.subjects
        ],
        levels=[LevelEntry(level=lv.level, name=lv.name) for lv in grid.levels],
        total_levels=grid.total_levels,
        video_count=grid.video_count,
        collisions=len(grid.collisions),
    )


@router.get("/grid", response_model=GridResponse)
async def get_grid(
    _user_id: str = Depends(get_current_user_id),
    grid_cache: GridCache = Depends(get_grid_cache),
) -> GridResponse:
    return _grid_response(await grid_cache.get())


@router.post("/grid/refresh", response_model=GridResponse)
async def refresh_grid(
    _user_id: str = Depends(get_current_user_id),
    grid_cache: GridCache = Depends(get_grid_cache),
) -> GridResponse:
    """Rebuild the index from a full catalog scan."""
    return _grid_response(await grid_cache.refresh())


@router.get("/videos/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: str,
    _user_id: str = Depends(get_current_user_id),
    grid_cache: GridCache = Depends(get_grid_cache),
) -> VideoResponse:
    item = (await grid_cache.get()).find(video_id)
    if item is None:
        msg = f"Video not found: {video_id}"
        raise NotFound(msg)
    return _video(item)
