"""Read views over a user's progress records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.db.models import Challenge, UserChallenge
from streakup.progress.store import get_progress
from streakup.progress.streaks import days_since, personal_completion_rate, utc_today

RECENT_ACTIVITY_LIMIT = 5


async def list_participating(db: AsyncSession, user_id: int) -> list[tuple[UserChallenge, Challenge]]:
    """(progress record, challenge) pairs for every challenge the user joined, newest join first."""
    result = await db.execute(
        select(UserChallenge, Challenge)
        .join(Challenge, Challenge.id == UserChallenge.challenge_id)
        .where(UserChallenge.user_id == user_id)
        .order_by(UserChallenge.start_date.desc(), UserChallenge.id.desc())
    )
    return [(row.UserChallenge, row.Challenge) for row in result]


async def get_progress_detail(db: AsyncSession, user_id: int, challenge_id: int) -> tuple[UserChallenge, Challenge]:
    """One progress record with its challenge.

    Raises:
        NotFoundError: If the user has not joined the challenge.
    """
    record = await get_progress(db, user_id, challenge_id)
    challenge = await db.get(Challenge, challenge_id)
    return record, challenge


def record_stats(record: UserChallenge, now: datetime) -> dict[str, Any]:
    """Derived per-record numbers shown next to raw counters."""
    return {
        "days_since_start": days_since(record.start_date, now),
        "completion_rate": personal_completion_rate(record.total_completions, record.start_date, now),
        "active_days": len(record.completed_dates),
    }


async def list_completable_today(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> list[tuple[UserChallenge, Challenge]]:
    """Joined challenges with no completion recorded for today's UTC date."""
    today = utc_today(now)
    return [
        (record, challenge)
        for record, challenge in await list_participating(db, user_id)
        if today not in record.completed_dates
    ]


def _avg(total: float, count: int) -> float:
    return round(total / count, 2) if count else 0.0


async def get_user_stats(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict[str, Any]:
    """Overview, performance, time and per-category statistics over all of a user's records."""
    if now is None:
        now = datetime.now(timezone.utc)
    pairs = await list_participating(db, user_id)
    count = len(pairs)

    total_score = sum(r.score for r, _ in pairs)
    total_completions = sum(r.total_completions for r, _ in pairs)
    total_active_days = sum(len(r.completed_dates) for r, _ in pairs)
    rates = [personal_completion_rate(r.total_completions, r.start_date, now) for r, _ in pairs]

    categories: dict[str, dict[str, Any]] = {}
    for record, challenge in pairs:
        entry = categories.setdefault(challenge.category, {
            "category": challenge.category,
            "count": 0,
            "total_score": 0,
            "total_completions": 0,
            "_streaks": 0,
        })
        entry["count"] += 1
        entry["total_score"] += record.score
        entry["total_completions"] += record.total_completions
        entry["_streaks"] += record.max_streak_count
    category_stats = []
    for entry in sorted(categories.values(), key=lambda e: (-e["total_score"], e["category"])):
        entry["average_streak"] = _avg(entry.pop("_streaks"), entry["count"])
        category_stats.append(entry)

    recent = sorted(
        (p for p in pairs if p[0].last_completion_date is not None),
        key=lambda p: p[0].last_completion_date,
        reverse=True,
    )[:RECENT_ACTIVITY_LIMIT]

    return {
        "overview": {
            "total_challenges": count,
            "active_challenges": count,
            "total_score": total_score,
            "total_completions": total_completions,
        },
        "performance": {
            "max_streak_count": max((r.max_streak_count for r, _ in pairs), default=0),
            "current_active_streaks": sum(r.current_streak_count for r, _ in pairs),
            "average_score": _avg(total_score, count),
            "average_completions": _avg(total_completions, count),
            "completion_rate": _avg(sum(rates), count),
        },
        "time_stats": {
            "total_active_days": total_active_days,
            "average_active_days": _avg(total_active_days, count),
        },
        "category_stats": category_stats,
        "recent_activity": [
            {
                "challenge_id": challenge.id,
                "challenge_title": challenge.title,
                "category": challenge.category,
                "last_completion_date": record.last_completion_date,
                "current_streak": record.current_streak_count,
                "total_completions": record.total_completions,
            }
            for record, challenge in recent
        ],
    }
