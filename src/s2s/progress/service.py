"""Progress tracker: which grid cells a user has watched to completion.

Progress records live at ``users/{uid}/progress/{videoId}``. They store only
the completion state; the (subject, level) cell is joined from the catalog
at read time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from s2s.errors import NotFound, ValidationError

if TYPE_CHECKING:
    from s2s.catalog.grid import CatalogItem, GridIndex
    from s2s.catalog.service import GridCache
    from s2s.sessions import UserSession
    from s2s.users.service import ProfileService

logger = structlog.get_logger()


def progress_collection(user_id: str) -> str:
    return f"users/{user_id}/progress"


def progress_path(user_id: str, video_id: str) -> str:
    return f"{progress_collection(user_id)}/{video_id}"


class ProgressTracker:
    """Marks videos watched and derives completion fractions."""

    def __init__(
        self,
        profiles: ProfileService,
        grid_cache: GridCache,
        watch_threshold: float = 0.9,
        videos_per_level_band: int = 5,
    ) -> None:
        self.profiles = profiles
        self.store = profiles.store
        self.grid_cache = grid_cache
        self.watch_threshold = watch_threshold
        self.videos_per_level_band = videos_per_level_band

    # --- Writes ---

    async def mark_watched(
        self,
        user_id: str,
        video_id: str,
        session: UserSession | None = None,
        progress: float = 1.0,
    ) -> bool:
        """Record a completed watch. Returns True on the first completion only.

        Repeat calls only refresh ``lastWatchedAt``; stats and subject
        completion are counted once per (user, video).
        """
        grid = await self.grid_cache.get()
        item = grid.find(video_id)
        if item is None:
            logger.warning("progress_video_not_in_catalog", user_id=user_id, video_id=video_id)
            msg = f"Video not found: {video_id}"
            raise NotFound(msg)

        profile = await self.profiles.require(user_id)
        path = progress_path(user_id, video_id)
        now = datetime.now(timezone.utc).isoformat()
        existing = await self.store.get(path)

        if existing is not None and existing.get("watchedFull"):
            if session is not None:
                session.ensure_active()
            await self.store.set(path, {"lastWatchedAt": now}, merge=True)
            return False

        stats = profile.stats
        patch: dict = {
            "stats": {
                "completedVideoCount": stats.completed_video_count + 1,
                "totalWatchTimeSeconds": stats.total_watch_time_seconds + item.duration_seconds,
            }
        }

        subjects = profile.achievements.subjects
        if item.subject not in subjects.completed_subject_ids:
            watched = (await self.progress_map(user_id, grid)).get(item.subject, {})
            watched[item.complexity_level] = True
            available = grid.levels_for(item.subject)
            if available and all(level in watched for level in available):
                patch["achievements"] = {
                    "subjects": {
                        "completedSubjects": subjects.completed_subjects + 1,
                        "completedSubjectIds": sorted(subjects.completed_subject_ids | {item.subject}),
                    }
                }
                logger.info("subject_completed", user_id=user_id, subject=item.subject)

        # Stats land before the record the repeat guard trusts.
        await self.profiles.merge(user_id, patch, session)
        if session is not None:
            session.ensure_active()
        await self.store.set(
            path,
            {
                "videoId": video_id,
                "watchedFull": True,
                "progress": progress,
                "lastWatchedAt": now,
            },
            merge=True,
        )
        logger.info(
            "video_watched",
            user_id=user_id,
            video_id=video_id,
            subject=item.subject,
            level=item.complexity_level,
        )
        return True

    async def report_playback(
        self,
        user_id: str,
        video_id: str,
        position: float,
        duration: float,
        session: UserSession | None = None,
    ) -> bool:
        """Playback position report. Counts as a completed watch at or past the threshold."""
        if duration <= 0 or position < 0:
            msg = "Playback position and duration must be positive"
            raise ValidationError(msg)
        fraction = min(position / duration, 1.0)
        if fraction < self.watch_threshold:
            return False
        return await self.mark_watched(user_id, video_id, session, progress=fraction)

    # --- Reads ---

    async def progress_map(self, user_id: str, grid: GridIndex | None = None) -> dict[str, dict[int, bool]]:
        """``subject -> {level: True}`` for every completed video still in the catalog."""
        if grid is None:
            grid = await self.grid_cache.get()
        result: dict[str, dict[int, bool]] = {}
        for snapshot in await self.store.list(progress_collection(user_id)):
            if not (snapshot.data or {}).get("watchedFull"):
                continue
            item: CatalogItem | None = grid.find(snapshot.id)
            if item is None:
                logger.warning("progress_record_orphaned", user_id=user_id, video_id=snapshot.id)
                continue
            result.setdefault(item.subject, {})[item.complexity_level] = True
        return result

    async def completed_count(self, user_id: str) -> int:
        progress = await self.progress_map(user_id)
        return sum(len(levels) for levels in progress.values())

    async def get_subject_progress(self, user_id: str, subject: str) -> float:
        """Completed levels for ``subject`` over the global level count."""
        grid = await self.grid_cache.get()
        total = grid.total_levels
        if total == 0:
            return 0.0
        progress = await self.progress_map(user_id, grid)
        return len(progress.get(subject, {})) / total

    async def current_level(self, user_id: str) -> int:
        """``clamp(1, completed // band + 1, total levels)``."""
        grid = await self.grid_cache.get()
        completed = await self.completed_count(user_id)
        level = completed // self.videos_per_level_band + 1
        return max(1, min(level, grid.total_levels))

    async def completion_rate(self, user_id: str) -> float:
        """Completed videos over videos in the catalog grid."""
        grid = await self.grid_cache.get()
        if grid.video_count == 0:
            return 0.0
        return min(await self.completed_count(user_id) / grid.video_count, 1.0)
