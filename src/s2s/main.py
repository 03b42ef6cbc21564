"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from s2s.auth.router import router as auth_router
from s2s.catalog.router import router as catalog_router
from s2s.catalog.service import init_grid_cache
from s2s.config import get_settings
from s2s.database import close_db, init_db
from s2s.errors import RemoteError
from s2s.gamification.router import router as gamification_router
from s2s.health.router import router as health_router
from s2s.library.router import router as library_router
from s2s.middleware import setup_middleware
from s2s.progress.router import router as progress_router
from s2s.redis_client import close_redis, init_document_store, init_redis
from s2s.users.router import router as users_router
from s2s.ws.router import router as ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.document_backend == "redis":
        await init_redis(settings.redis_url)
    init_document_store(settings)

    # Warm the grid index; requests load it lazily if this fails
    grid_cache = init_grid_cache()
    try:
        await grid_cache.refresh()
    except RemoteError:
        logger.warning("grid_warmup_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="scroll2study API",
        description="Progress, streak and achievement bookkeeping for the scroll2study study grid",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(catalog_router)
    app.include_router(progress_router)
    app.include_router(gamification_router)
    app.include_router(library_router)
    app.include_router(ws_router)

    return app


app = create_app()
