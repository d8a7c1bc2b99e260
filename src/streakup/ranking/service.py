"""Ranking service: global and per-challenge leaderboards, my-rank lookups.

All ordering and pagination happens in SQL, so a page costs one ordered
query regardless of how many progress records exist.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.db.models import Challenge, User, UserChallenge
from streakup.exceptions import NotFoundError
from streakup.progress.service import record_stats
from streakup.progress.store import get_progress
from streakup.ranking.ordering import (
    CHALLENGE_KEY_CHAINS,
    GLOBAL_KEY_CHAINS,
    RankingMetric,
    descending,
    page_offset,
    page_rank,
    percentile,
    strictly_ahead,
    total_pages,
)


def _user_summary(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "nickname": user.nickname,
        "profile_image": user.profile_image,
        "grade": user.grade,
    }


def _record_summary(record: UserChallenge) -> dict[str, Any]:
    return {
        "id": record.id,
        "score": record.score,
        "total_completions": record.total_completions,
        "current_streak_count": record.current_streak_count,
        "max_streak_count": record.max_streak_count,
        "start_date": record.start_date,
        "last_completion_date": record.last_completion_date,
    }


# ---------------------------------------------------------------------------
# Global ranking
# ---------------------------------------------------------------------------


async def get_global_ranking(
    db: AsyncSession,
    metric: RankingMetric = RankingMetric.SCORE,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Users ranked by their totals across all joined challenges."""
    totals = (
        select(
            UserChallenge.user_id.label("user_id"),
            func.sum(UserChallenge.score).label("total_score"),
            func.sum(UserChallenge.total_completions).label("total_completions"),
            func.max(UserChallenge.max_streak_count).label("max_streak_count"),
            func.sum(UserChallenge.current_streak_count).label("current_streak_sum"),
            func.count(UserChallenge.id).label("challenge_count"),
        )
        .group_by(UserChallenge.user_id)
        .subquery()
    )

    key_columns = [totals.c[name] for name in GLOBAL_KEY_CHAINS[metric]]
    query = (
        select(User, totals)
        .join(totals, totals.c.user_id == User.id)
        .order_by(*descending(key_columns), totals.c.user_id.asc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    rows = (await db.execute(query)).all()

    total = (
        await db.execute(select(func.count()).select_from(totals).join(User, User.id == totals.c.user_id))
    ).scalar_one()

    rankings = []
    for index, row in enumerate(rows):
        rankings.append({
            "rank": page_rank(page, limit, index),
            "user": _user_summary(row.User),
            "total_score": int(row.total_score or 0),
            "total_completions": int(row.total_completions or 0),
            "max_streak_count": int(row.max_streak_count or 0),
            "current_streak_sum": int(row.current_streak_sum or 0),
            "challenge_count": int(row.challenge_count),
        })

    return {
        "rankings": rankings,
        "total": total,
        "total_pages": total_pages(total, limit),
        "page": page,
        "ranking_type": metric.value,
    }


# ---------------------------------------------------------------------------
# Per-challenge ranking
# ---------------------------------------------------------------------------


async def _get_challenge(db: AsyncSession, challenge_id: int) -> Challenge:
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        msg = f"Challenge {challenge_id} not found"
        raise NotFoundError(msg)
    return challenge


async def get_challenge_stats(db: AsyncSession, challenge_id: int) -> dict[str, Any]:
    """Aggregate score/completion/streak statistics over a challenge's participants."""
    row = (
        await db.execute(
            select(
                func.count(UserChallenge.id).label("participants"),
                func.avg(UserChallenge.score).label("average_score"),
                func.max(UserChallenge.score).label("highest_score"),
                func.avg(UserChallenge.total_completions).label("average_completions"),
                func.max(UserChallenge.total_completions).label("highest_completions"),
                func.avg(UserChallenge.max_streak_count).label("average_streak"),
                func.max(UserChallenge.max_streak_count).label("highest_streak"),
            ).where(UserChallenge.challenge_id == challenge_id)
        )
    ).one()

    return {
        "total_participants": int(row.participants),
        "average_score": round(float(row.average_score or 0), 2),
        "highest_score": int(row.highest_score or 0),
        "average_completions": round(float(row.average_completions or 0), 2),
        "highest_completions": int(row.highest_completions or 0),
        "average_streak": round(float(row.average_streak or 0), 2),
        "highest_streak": int(row.highest_streak or 0),
    }


async def get_challenge_ranking(
    db: AsyncSession,
    challenge_id: int,
    metric: RankingMetric = RankingMetric.SCORE,
    page: int = 1,
    limit: int = 20,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Participants of one challenge ranked with the metric's tie-break chain.

    Raises:
        NotFoundError: If the challenge does not exist.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    challenge = await _get_challenge(db, challenge_id)

    key_columns = [getattr(UserChallenge, name) for name in CHALLENGE_KEY_CHAINS[metric]]
    query = (
        select(UserChallenge, User)
        .join(User, User.id == UserChallenge.user_id)
        .where(UserChallenge.challenge_id == challenge_id)
        .order_by(*descending(key_columns), UserChallenge.user_id.asc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    rows = (await db.execute(query)).all()

    rankings = []
    for index, row in enumerate(rows):
        record: UserChallenge = row.UserChallenge
        rankings.append({
            "rank": page_rank(page, limit, index),
            "user": _user_summary(row.User),
            "progress": _record_summary(record),
            "stats": record_stats(record, now),
        })

    stats = await get_challenge_stats(db, challenge_id)
    total = stats["total_participants"]
    return {
        "challenge": {
            "id": challenge.id,
            "title": challenge.title,
            "category": challenge.category,
            "completion_rate": challenge.completion_rate,
        },
        "rankings": rankings,
        "total": total,
        "total_pages": total_pages(total, limit),
        "page": page,
        "ranking_type": metric.value,
        "challenge_stats": stats,
    }


async def get_my_challenge_rank(
    db: AsyncSession,
    challenge_id: int,
    user_id: int,
    metric: RankingMetric = RankingMetric.SCORE,
    now: datetime | None = None,
) -> dict[str, Any]:
    """A user's rank in a challenge: 1 + number of participants strictly ahead.

    Raises:
        NotFoundError: If the challenge does not exist or the user has not joined.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    await _get_challenge(db, challenge_id)
    record = await get_progress(db, user_id, challenge_id)

    names = CHALLENGE_KEY_CHAINS[metric]
    columns = [getattr(UserChallenge, name) for name in names]
    values = [getattr(record, name) for name in names]

    ahead = (
        await db.execute(
            select(func.count(UserChallenge.id)).where(
                UserChallenge.challenge_id == challenge_id,
                strictly_ahead(columns, values),
            )
        )
    ).scalar_one()
    total = (
        await db.execute(
            select(func.count(UserChallenge.id)).where(UserChallenge.challenge_id == challenge_id)
        )
    ).scalar_one()

    rank = int(ahead) + 1
    stats = record_stats(record, now)
    stats["percentile"] = percentile(rank, total)

    return {
        "rank": rank,
        "total_participants": total,
        "progress": _record_summary(record),
        "stats": stats,
        "ranking_type": metric.value,
        "value": values[0],
    }
