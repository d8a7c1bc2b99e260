"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from streakup.challenges.router import router as challenges_router
from streakup.config import get_settings
from streakup.database import close_db, get_session_factory, init_db
from streakup.gamification.router import router as badges_router
from streakup.gamification.seed import seed_badges
from streakup.health.router import router as health_router
from streakup.middleware import setup_middleware
from streakup.progress.router import router as progress_router
from streakup.ranking.router import router as ranking_router
from streakup.redis_client import close_redis, init_redis
from streakup.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.seed_badges_on_startup:
        try:
            async with get_session_factory()() as db:
                await seed_badges(db)
        except Exception:
            logger.warning("badge_seed_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Streakup API",
        description="Daily habit challenges: completions, streaks, badges and rankings",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(challenges_router)
    app.include_router(progress_router)
    app.include_router(ranking_router)
    app.include_router(badges_router)

    return app


app = create_app()
