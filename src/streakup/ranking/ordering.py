"""Ranking orders: which columns decide a metric, in which order.

Every ranking is descending on a chain of keys. Leaderboard pages add the
user id (ascending) as a last key so equal rows always come back in the same
order; rank lookups do not, so tied users share a rank.

Per-challenge chains:
  score        score, total_completions
  completions  total_completions, score
  streak       max_streak_count, current_streak_count, score
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, and_, false, or_

from streakup.challenges.completion_rate import round_half_up


class RankingMetric(str, Enum):
    SCORE = "score"
    COMPLETIONS = "completions"
    STREAK = "streak"


# Progress-record attribute names per metric, primary key first.
CHALLENGE_KEY_CHAINS: dict[RankingMetric, tuple[str, ...]] = {
    RankingMetric.SCORE: ("score", "total_completions"),
    RankingMetric.COMPLETIONS: ("total_completions", "score"),
    RankingMetric.STREAK: ("max_streak_count", "current_streak_count", "score"),
}

# Aggregate labels per metric for the global (per-user) ranking.
GLOBAL_KEY_CHAINS: dict[RankingMetric, tuple[str, ...]] = {
    RankingMetric.SCORE: ("total_score", "total_completions"),
    RankingMetric.COMPLETIONS: ("total_completions", "total_score"),
    RankingMetric.STREAK: ("max_streak_count", "current_streak_sum", "total_score"),
}


def strictly_ahead(columns: Sequence[ColumnElement[Any]], values: Sequence[Any]) -> ColumnElement[bool]:
    """Rows that sort strictly before `values` on a descending key chain.

    Expands to: c0 > v0 OR (c0 = v0 AND c1 > v1) OR (c0 = v0 AND c1 = v1 AND c2 > v2) ...
    """
    clauses = []
    for i, column in enumerate(columns):
        equal_prefix = [columns[j] == values[j] for j in range(i)]
        clauses.append(and_(*equal_prefix, column > values[i]))
    if not clauses:
        return false()
    return or_(*clauses)


def descending(columns: Sequence[ColumnElement[Any]]) -> list[ColumnElement[Any]]:
    """ORDER BY clauses for a descending key chain."""
    return [column.desc() for column in columns]


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def page_rank(page: int, limit: int, index: int) -> int:
    """1-based rank of the index-th row on a page."""
    return page_offset(page, limit) + index + 1


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return -(-total // limit)


def percentile(rank: int, total: int) -> int:
    """Share of participants at or below this rank, 0-100. Rank 1 of 4 → 100; rank 4 of 4 → 25."""
    if total <= 0 or rank <= 0:
        return 0
    return round_half_up(100 * (total - rank + 1) / total)
