"""Completion recorder: applies one daily completion and runs the derived-state cascade.

Order of operations for a completion:
1. Lock the progress record; reject unknown records and a second completion
   on the same UTC day before touching anything.
2. Append the day and photo, bump counters, score and streak; commit.
3. Cascade, each stage guarded on its own: trust score, badge evaluation,
   grade, challenge completion rate. A failing stage is logged and skipped;
   the completion stays recorded and the next write recomputes the stage.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

import structlog
from redis.asyncio import Redis
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.challenges.completion_rate import recompute_completion_rate
from streakup.config import get_settings
from streakup.db.models import CompletionEntry, User
from streakup.exceptions import AlreadyCompletedTodayError, NotFoundError
from streakup.gamification.badge_engine import BadgeEngine, count_badges
from streakup.gamification.badge_rules import BadgeRule
from streakup.gamification.grades import refresh_grade
from streakup.progress.store import lock_progress
from streakup.progress.streaks import capped_trust_score, next_streak, trust_score_increase, utc_today

logger = structlog.get_logger()


@dataclass
class CompletionResult:
    """Snapshot returned to the caller, read after the cascade finished."""

    score: int
    total_completions: int
    current_streak_count: int
    max_streak_count: int
    completed_date: date
    photo_url: str
    trust_score: float = 0.0
    trust_score_increase: float = 0.0
    grade: str = "bronze"
    total_badges: int = 0
    badges_awarded: list[str] = field(default_factory=list)
    cascade_failures: list[str] = field(default_factory=list)


async def _cascade_failed(db: AsyncSession, stage: str, user_id: int, challenge_id: int) -> None:
    """Discard the failed stage's pending changes and log it. Must be called from an except block."""
    await db.rollback()
    logger.error(
        "cascade_failed",
        stage=stage,
        user_id=user_id,
        challenge_id=challenge_id,
        exc_info=True,
    )


TRUST_UPDATE_ATTEMPTS = 5


async def apply_trust_score(db: AsyncSession, user_id: int, current_streak: int) -> float:
    """Raise the user's trust score for a completion. Returns the delta actually applied.

    Completions of different challenges by the same user run without sharing a
    progress lock, so the write is a compare-and-set against the value read:
    the row is locked where the backend supports it, and a concurrent change
    that slips in anyway makes the UPDATE match nothing and the read repeat.

    Raises:
        NotFoundError: If the user does not exist.
        RuntimeError: If the score kept changing under every attempt.
    """
    increase = trust_score_increase(current_streak)
    for _ in range(TRUST_UPDATE_ATTEMPTS):
        previous = (
            await db.execute(select(User.trust_score).where(User.id == user_id).with_for_update())
        ).scalar_one_or_none()
        if previous is None:
            msg = f"User {user_id} not found"
            raise NotFoundError(msg)

        target = capped_trust_score(previous, increase)
        if target == previous:
            await db.commit()
            return 0.0

        stored = (
            await db.execute(
                update(User)
                .where(User.id == user_id, User.trust_score == previous)
                .values(trust_score=target)
                .returning(User.trust_score)
                .execution_options(synchronize_session=False)
            )
        ).scalar_one_or_none()
        if stored is not None:
            await db.commit()
            applied = stored - previous
            logger.info(
                "trust_score_updated",
                user_id=user_id,
                trust_score=stored,
                increase=applied,
                current_streak=current_streak,
            )
            return applied

    msg = f"Trust score for user {user_id} changed during every update attempt"
    raise RuntimeError(msg)


async def record_completion(
    db: AsyncSession,
    user_id: int,
    challenge_id: int,
    photo_url: str,
    *,
    now: datetime | None = None,
    redis: Redis | None = None,
    badge_catalog: Sequence[BadgeRule] | None = None,
) -> CompletionResult:
    """Record today's completion for (user_id, challenge_id).

    Raises:
        ValueError: If photo_url is empty.
        NotFoundError: If the user has not joined the challenge.
        AlreadyCompletedTodayError: If today's UTC date is already recorded,
            including when a concurrent request recorded it first.
    """
    if not photo_url:
        msg = "A completion photo is required"
        raise ValueError(msg)

    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)
    today = utc_today(now)

    record = await lock_progress(db, user_id, challenge_id)
    completed = record.completed_dates
    if today in completed:
        await db.rollback()
        msg = "Already completed today"
        raise AlreadyCompletedTodayError(msg)

    streak = next_streak(completed, today, record.current_streak_count)
    record.entries.append(CompletionEntry(completed_on=today, photo_url=photo_url))
    record.total_completions += 1
    record.score += settings.completion_score_increment
    record.last_completion_date = today
    record.current_streak_count = streak
    record.max_streak_count = max(record.max_streak_count, streak)
    record.updated_at = now

    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request inserted today's entry between our read and write.
        await db.rollback()
        msg = "Already completed today"
        raise AlreadyCompletedTodayError(msg) from None

    result = CompletionResult(
        score=record.score,
        total_completions=record.total_completions,
        current_streak_count=record.current_streak_count,
        max_streak_count=record.max_streak_count,
        completed_date=today,
        photo_url=photo_url,
    )
    logger.info(
        "completion_recorded",
        user_id=user_id,
        challenge_id=challenge_id,
        completed_date=today.isoformat(),
        current_streak=result.current_streak_count,
        score=result.score,
    )

    try:
        result.trust_score_increase = await apply_trust_score(db, user_id, streak)
    except Exception:
        await _cascade_failed(db, "trust_score", user_id, challenge_id)
        result.cascade_failures.append("trust_score")

    try:
        engine = BadgeEngine(
            db,
            redis=redis,
            catalog=badge_catalog,
            max_representative=settings.representative_badge_slots,
        )
        evaluation = await engine.evaluate_user(user_id)
        result.badges_awarded = evaluation.awarded
    except Exception:
        await _cascade_failed(db, "badges", user_id, challenge_id)
        result.cascade_failures.append("badges")

    try:
        await refresh_grade(db, user_id)
    except Exception:
        await _cascade_failed(db, "grade", user_id, challenge_id)
        result.cascade_failures.append("grade")

    try:
        await recompute_completion_rate(db, challenge_id, now, settings.completion_rate_max_days)
    except Exception:
        await _cascade_failed(db, "completion_rate", user_id, challenge_id)
        result.cascade_failures.append("completion_rate")

    user = (
        await db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if user is not None:
        result.trust_score = user.trust_score
        result.grade = user.grade
    result.total_badges = await count_badges(db, user_id)
    return result

