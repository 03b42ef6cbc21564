"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from s2s.catalog.service import GridCache, get_grid_cache
from s2s.config import get_settings
from s2s.database import get_session
from s2s.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    grid_cache: GridCache = Depends(get_grid_cache),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: catalog database, document backend and grid index."""
    checks: dict[str, object] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc}"

    if get_settings().document_backend == "redis":
        try:
            await get_redis().ping()
            checks["redis"] = "ok"
        except (RedisError, RuntimeError) as exc:
            checks["redis"] = f"error: {exc}"

    checks["grid"] = "ok" if grid_cache.current is not None else "not loaded"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
