"""arq jobs that recompute derived state.

Each job re-runs one cascade stage from stored facts, so it is idempotent and
can repair a stage that failed during a completion request.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select

from streakup.challenges.completion_rate import recompute_completion_rate
from streakup.config import get_settings
from streakup.database import close_db, get_session_factory, init_db
from streakup.db.models import Challenge
from streakup.gamification.badge_engine import BadgeEngine
from streakup.gamification.grades import refresh_grade
from streakup.middleware.logging import setup_logging
from streakup.redis_client import close_redis, get_redis, init_redis

logger = structlog.get_logger()


async def startup(ctx: dict[str, Any]) -> None:
    """Open the database engine and Redis pool for the worker process."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    ctx["session_factory"] = get_session_factory()
    ctx["redis"] = get_redis()
    logger.info("recompute_worker_started")


async def shutdown(ctx: dict[str, Any]) -> None:
    await close_db()
    await close_redis()
    logger.info("recompute_worker_stopped")


async def recompute_challenge_rate(ctx: dict[str, Any], challenge_id: int) -> int:
    """Recompute one challenge's completion rate."""
    async with ctx["session_factory"]() as db:
        return await recompute_completion_rate(db, challenge_id)


async def reevaluate_user(ctx: dict[str, Any], user_id: int) -> list[str]:
    """Grant any badges the user qualifies for and reclassify their grade."""
    settings = get_settings()
    async with ctx["session_factory"]() as db:
        engine = BadgeEngine(db, redis=ctx.get("redis"), max_representative=settings.representative_badge_slots)
        evaluation = await engine.evaluate_user(user_id)
        await refresh_grade(db, user_id)
    return evaluation.awarded


async def recompute_all_challenge_rates(ctx: dict[str, Any]) -> int:
    """Recompute every challenge's completion rate. Returns how many were updated.

    A challenge that fails is logged and skipped; the rest still run.
    """
    async with ctx["session_factory"]() as db:
        challenge_ids = list((await db.execute(select(Challenge.id).order_by(Challenge.id))).scalars())

    updated = 0
    for challenge_id in challenge_ids:
        async with ctx["session_factory"]() as db:
            try:
                await recompute_completion_rate(db, challenge_id)
            except Exception:
                logger.error("completion_rate_recompute_failed", challenge_id=challenge_id, exc_info=True)
                continue
        updated += 1

    logger.info("completion_rates_recomputed", challenges=updated)
    return updated
