"""Calendar-day arithmetic for completions: UTC day boundaries, streaks, trust score.

Everything here is pure so the recorder and the ranking views share one
definition of "today", "yesterday" and "days since joining".
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

# (minimum current streak, trust bonus), highest tier first. At most one applies.
TRUST_STREAK_BONUSES: list[tuple[int, float]] = [
    (10, 2.0),
    (7, 1.5),
    (3, 1.0),
]
TRUST_BASE_INCREASE = 1.0
TRUST_SCORE_CAP = 100.0


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on round-trip)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_today(now: datetime | None = None) -> date:
    """The current calendar day in UTC (time of day truncated)."""
    if now is None:
        now = datetime.now(timezone.utc)
    return as_utc(now).date()


def days_since(start: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed since start (floor), never negative."""
    if now is None:
        now = datetime.now(timezone.utc)
    elapsed = as_utc(now) - as_utc(start)
    return max(0, elapsed // timedelta(days=1))


def next_streak(completed_dates: list[date], today: date, current_streak: int) -> int:
    """Streak after completing `today`: +1 if yesterday was completed, else restart at 1."""
    yesterday = today - timedelta(days=1)
    if yesterday in completed_dates:
        return current_streak + 1
    return 1


def trust_score_increase(current_streak: int) -> float:
    """Base increase plus the single highest streak bonus that applies."""
    increase = TRUST_BASE_INCREASE
    for min_streak, bonus in TRUST_STREAK_BONUSES:
        if current_streak >= min_streak:
            increase += bonus
            break
    return increase


def capped_trust_score(current: float, increase: float) -> float:
    """Add increase to the trust score without exceeding the cap."""
    return min(TRUST_SCORE_CAP, current + increase)


def personal_completion_rate(total_completions: int, start: datetime, now: datetime | None = None) -> float:
    """Completions per elapsed day as a percentage, capped at 100 (0 on the join day)."""
    elapsed = days_since(start, now)
    if elapsed <= 0:
        return 0.0
    return round(min(total_completions / elapsed * 100, 100.0), 2)
