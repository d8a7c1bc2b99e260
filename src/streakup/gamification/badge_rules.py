"""Badge conditions and the pure evaluation pass.

A badge catalog is an ordered, immutable tuple of BadgeRule. Evaluation
takes the catalog, a user's lifetime stats and what they already hold, and
returns what to grant. There is no database access, so it can be driven by a
synthetic catalog in tests.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from streakup.exceptions import BadgeConditionError

if TYPE_CHECKING:
    from streakup.db.models import BadgeDefinition, UserChallenge

CONDITION_TYPES = frozenset({
    "completions",
    "streak",
    "score",
    "challenges",
    "days",
    "category_completions",
})

CHALLENGE_CATEGORIES = frozenset({
    "health",
    "exercise",
    "study",
    "hobby",
    "lifestyle",
    "social",
    "other",
})

BADGE_CATEGORIES = CHALLENGE_CATEGORIES | {"achievement"}
BADGE_RARITIES = frozenset({"common", "rare", "epic", "legendary"})

DEFAULT_CATEGORY = "other"

# Showcase slots are numbered 1..MAX_REPRESENTATIVE_BADGES.
MAX_REPRESENTATIVE_BADGES = 4


def validate_condition(condition_type: str, threshold: Any, category_target: str | None) -> None:
    """Check a badge condition before it is stored.

    Raises:
        BadgeConditionError: Unknown type, threshold below 1, or a
            category_completions condition without a valid target category.
    """
    if condition_type not in CONDITION_TYPES:
        msg = f"Unknown condition type: {condition_type!r}"
        raise BadgeConditionError(msg)
    if not isinstance(threshold, int) or isinstance(threshold, bool) or threshold < 1:
        msg = "Condition threshold must be an integer >= 1"
        raise BadgeConditionError(msg)
    if condition_type == "category_completions":
        if not category_target:
            msg = "category_target is required for category_completions condition"
            raise BadgeConditionError(msg)
        if category_target not in CHALLENGE_CATEGORIES:
            msg = f"Unknown category_target: {category_target!r}"
            raise BadgeConditionError(msg)


@dataclass(frozen=True)
class LifetimeStats:
    """A user's statistics aggregated over all their progress records."""

    total_completions: int = 0
    max_streak: int = 0
    total_score: int = 0
    total_challenges: int = 0
    total_active_days: int = 0
    category_completions: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        records: Iterable[UserChallenge],
        category_of: Callable[[int], str | None],
    ) -> LifetimeStats:
        """Aggregate progress records; category_of maps a challenge id to its category."""
        total_completions = 0
        max_streak = 0
        total_score = 0
        total_challenges = 0
        total_active_days = 0
        by_category: dict[str, int] = {}

        for record in records:
            total_completions += record.total_completions
            max_streak = max(max_streak, record.max_streak_count)
            total_score += record.score
            total_challenges += 1
            total_active_days += len(record.completed_dates)
            category = category_of(record.challenge_id) or DEFAULT_CATEGORY
            by_category[category] = by_category.get(category, 0) + record.total_completions

        return cls(
            total_completions=total_completions,
            max_streak=max_streak,
            total_score=total_score,
            total_challenges=total_challenges,
            total_active_days=total_active_days,
            category_completions=by_category,
        )

    def value_for(self, condition_type: str, category_target: str | None = None) -> int:
        """The aggregate a condition type is measured against."""
        if condition_type == "completions":
            return self.total_completions
        if condition_type == "streak":
            return self.max_streak
        if condition_type == "score":
            return self.total_score
        if condition_type == "challenges":
            return self.total_challenges
        if condition_type == "days":
            return self.total_active_days
        if condition_type == "category_completions":
            if not category_target:
                return 0
            return self.category_completions.get(category_target, 0)
        msg = f"Unknown condition type: {condition_type!r}"
        raise BadgeConditionError(msg)


@dataclass(frozen=True)
class BadgeRule:
    """Immutable catalog entry used by the evaluation engine."""

    badge_id: int
    slug: str
    condition_type: str
    threshold: int
    category_target: str | None = None

    @classmethod
    def from_definition(cls, badge: BadgeDefinition) -> BadgeRule:
        return cls(
            badge_id=badge.id,
            slug=badge.slug,
            condition_type=badge.condition_type,
            threshold=badge.threshold,
            category_target=badge.category_target,
        )

    def is_met(self, stats: LifetimeStats) -> bool:
        return stats.value_for(self.condition_type, self.category_target) >= self.threshold


@dataclass(frozen=True)
class BadgeGrant:
    """A newly earned badge and the showcase slot it was auto-assigned, if any."""

    rule: BadgeRule
    representative_order: int | None = None


def _next_free_order(taken: set[int], max_representative: int) -> int | None:
    """Next showcase slot: len(taken) + 1 when free, else the lowest unused slot."""
    if len(taken) >= max_representative:
        return None
    preferred = len(taken) + 1
    if preferred not in taken:
        return preferred
    for order in range(1, max_representative + 1):
        if order not in taken:
            return order
    return None


def evaluate_badges(
    catalog: Iterable[BadgeRule],
    stats: LifetimeStats,
    earned_ids: Iterable[int],
    representative_orders: Iterable[int],
    max_representative: int = MAX_REPRESENTATIVE_BADGES,
) -> list[BadgeGrant]:
    """Scan the catalog in order and return badges newly met by stats.

    Badges already earned are skipped, so repeated passes never duplicate or
    revoke. New badges fill free showcase slots after the existing ones
    (order = count + 1) until max_representative is reached; existing slots
    are never moved. If the user left a gap that makes count + 1 collide with
    a chosen slot, the lowest free slot is used instead.
    """
    max_representative = min(max_representative, MAX_REPRESENTATIVE_BADGES)
    earned = set(earned_ids)
    taken = set(representative_orders)
    grants: list[BadgeGrant] = []

    for rule in catalog:
        if rule.badge_id in earned:
            continue
        if not rule.is_met(stats):
            continue

        order = _next_free_order(taken, max_representative)
        if order is not None:
            taken.add(order)

        earned.add(rule.badge_id)
        grants.append(BadgeGrant(rule=rule, representative_order=order))

    return grants
