"""Grid index: (subject, complexity level) -> catalog item.

Built by one pass over subjects, one over levels and one over videos. Videos
whose subject or level is not in the grid are skipped. When
two videos claim the same cell, the one processed last wins; the collision
is logged and kept on ``GridIndex.collisions`` so it can be fixed upstream.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class SubjectInfo:
    id: str
    name: str
    order: int
    description: str = ""


@dataclass(frozen=True)
class LevelInfo:
    id: str
    level: int
    name: str
    order: int = 0
    description: str = ""
    requirements: str = ""


@dataclass(frozen=True)
class CatalogItem:
    id: str
    subject: str
    complexity_level: int
    title: str
    duration_seconds: float = 0.0
    description: str = ""
    video_url: str = ""
    thumbnail_url: str = ""


@dataclass(frozen=True)
class Collision:
    subject: str
    level: int
    replaced: str
    kept: str


@dataclass
class GridIndex:
    """Immutable-by-convention snapshot of the catalog grid."""

    subjects: list[SubjectInfo] = field(default_factory=list)
    levels: list[LevelInfo] = field(default_factory=list)
    cells: dict[str, dict[int, CatalogItem]] = field(default_factory=dict)
    videos: dict[str, CatalogItem] = field(default_factory=dict)
    collisions: list[Collision] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        subjects: Iterable[SubjectInfo],
        levels: Iterable[LevelInfo],
        videos: Iterable[CatalogItem],
    ) -> GridIndex:
        index = cls(
            subjects=sorted(subjects, key=lambda s: s.order),
            levels=sorted(levels, key=lambda lv: lv.level),
        )
        for subject in index.subjects:
            index.cells[subject.id] = {}
        known_levels = {lv.level for lv in index.levels}

        for video in videos:
            if video.subject not in index.cells or video.complexity_level not in known_levels:
                logger.warning(
                    "grid_video_skipped",
                    video_id=video.id,
                    subject=video.subject,
                    level=video.complexity_level,
                )
                continue
            index.videos[video.id] = video
            row = index.cells[video.subject]
            previous = row.get(video.complexity_level)
            if previous is not None and previous.id != video.id:
                index.collisions.append(
                    Collision(video.subject, video.complexity_level, previous.id, video.id)
                )
                logger.warning(
                    "grid_cell_collision",
                    subject=video.subject,
                    level=video.complexity_level,
                    replaced=previous.id,
                    kept=video.id,
                )
            row[video.complexity_level] = video

        return index

    # --- Lookups ---

    def get_video(self, subject: str, level: int) -> CatalogItem | None:
        return self.cells.get(subject, {}).get(level)

    def has_video(self, subject: str, level: int) -> bool:
        return self.get_video(subject, level) is not None

    def find(self, video_id: str) -> CatalogItem | None:
        return self.videos.get(video_id)

    def levels_for(self, subject: str) -> list[int]:
        """Levels that have an item for ``subject``, ascending."""
        return sorted(self.cells.get(subject, {}))

    def max_level(self, subject: str) -> int:
        """Number of levels that have an item for ``subject``."""
        return len(self.cells.get(subject, {}))

    @property
    def total_levels(self) -> int:
        """Global count of defined complexity levels."""
        return len(self.levels)

    @property
    def video_count(self) -> int:
        """Number of distinct items reachable through the grid."""
        return sum(len(row) for row in self.cells.values())
