"""Challenge completion rate: full recompute over all participants.

For each participant the denominator is the number of days they could have
completed, from their join day through today, clamped to [1, max_days]:

    possible = clamp(days_since(start_date) + 1, 1, max_days)
    rate     = round(100 * sum(total_completions) / sum(possible))

The cap keeps long-running participants from diluting the rate forever.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.config import get_settings
from streakup.db.models import Challenge, UserChallenge
from streakup.exceptions import NotFoundError
from streakup.progress.store import list_for_challenge
from streakup.progress.streaks import days_since

logger = structlog.get_logger()

DEFAULT_MAX_POSSIBLE_DAYS = 30


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def possible_days(start_date: datetime, now: datetime, max_days: int = DEFAULT_MAX_POSSIBLE_DAYS) -> int:
    """Days a participant could have completed so far, clamped to [1, max_days]."""
    return max(1, min(days_since(start_date, now) + 1, max_days))


def compute_completion_rate(
    records: Iterable[UserChallenge],
    now: datetime | None = None,
    max_days: int = DEFAULT_MAX_POSSIBLE_DAYS,
) -> int:
    """Completion rate (0-100) over a challenge's progress records. 0 with no records."""
    if now is None:
        now = datetime.now(timezone.utc)

    total_possible = 0
    total_actual = 0
    for record in records:
        total_possible += possible_days(record.start_date, now, max_days)
        total_actual += record.total_completions

    if total_possible <= 0:
        return 0
    return max(0, min(100, round_half_up(100 * total_actual / total_possible)))


async def recompute_completion_rate(
    db: AsyncSession,
    challenge_id: int,
    now: datetime | None = None,
    max_days: int | None = None,
) -> int:
    """Recompute and store a challenge's completion rate, then commit.

    Idempotent: the result depends only on the stored progress records.

    Raises:
        NotFoundError: If the challenge does not exist.
    """
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        msg = f"Challenge {challenge_id} not found"
        raise NotFoundError(msg)

    if max_days is None:
        max_days = get_settings().completion_rate_max_days

    records = await list_for_challenge(db, challenge_id)
    rate = compute_completion_rate(records, now, max_days)
    challenge.completion_rate = rate
    await db.commit()

    logger.info(
        "completion_rate_updated",
        challenge_id=challenge_id,
        participants=len(records),
        completion_rate=rate,
    )
    return rate
