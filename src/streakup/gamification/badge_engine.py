"""Badge evaluation engine: grants badges a user newly qualifies for."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from redis.asyncio import Redis
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.db.models import BadgeDefinition, Challenge, User, UserBadge
from streakup.exceptions import NotFoundError
from streakup.gamification.badge_rules import (
    MAX_REPRESENTATIVE_BADGES,
    BadgeRule,
    LifetimeStats,
    evaluate_badges,
)
from streakup.progress.store import list_for_user
from streakup.redis_client import publish_event

logger = structlog.get_logger()

BADGE_EARNED_CHANNEL = "pubsub:badge_earned"


async def load_catalog(db: AsyncSession) -> tuple[BadgeRule, ...]:
    """Load the badge catalog in scan order (sort_order, then id)."""
    result = await db.execute(
        select(BadgeDefinition).order_by(BadgeDefinition.sort_order, BadgeDefinition.id)
    )
    return tuple(BadgeRule.from_definition(b) for b in result.scalars())


async def load_challenge_categories(db: AsyncSession, challenge_ids: Sequence[int]) -> dict[int, str]:
    """Map challenge id to category for the given challenges."""
    if not challenge_ids:
        return {}
    result = await db.execute(
        select(Challenge.id, Challenge.category).where(Challenge.id.in_(challenge_ids))
    )
    return {row.id: row.category for row in result}


async def count_badges(db: AsyncSession, user_id: int) -> int:
    """Number of badges a user has earned."""
    result = await db.execute(
        select(func.count(UserBadge.id)).where(UserBadge.user_id == user_id)
    )
    return int(result.scalar_one())


@dataclass
class BadgeEvaluation:
    """Outcome of one evaluation pass."""

    awarded: list[str] = field(default_factory=list)
    total_badges: int = 0


class BadgeEngine:
    """Evaluates the badge catalog against a user's lifetime statistics.

    The catalog can be injected (tests, batch jobs); otherwise it is loaded
    once per engine instance from badge_definitions.
    """

    def __init__(
        self,
        db: AsyncSession,
        redis: Redis | None = None,
        catalog: Sequence[BadgeRule] | None = None,
        max_representative: int = MAX_REPRESENTATIVE_BADGES,
    ) -> None:
        self.db = db
        self.redis = redis
        self._catalog: tuple[BadgeRule, ...] | None = tuple(catalog) if catalog is not None else None
        self.max_representative = max_representative

    async def catalog(self) -> tuple[BadgeRule, ...]:
        if self._catalog is None:
            self._catalog = await load_catalog(self.db)
        return self._catalog

    async def lifetime_stats(self, user_id: int) -> LifetimeStats:
        """Aggregate all of a user's progress records."""
        records = await list_for_user(self.db, user_id)
        categories = await load_challenge_categories(self.db, [r.challenge_id for r in records])
        return LifetimeStats.from_records(records, categories.get)

    async def evaluate_user(self, user_id: int) -> BadgeEvaluation:
        """Grant every catalog badge the user newly qualifies for, then commit.

        Earned badges are never re-evaluated. If a concurrent pass already
        inserted one of the same badges, this pass is rolled back and reports
        nothing awarded; the other pass owns the grant.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = await self.db.get(User, user_id)
        if user is None:
            msg = f"User {user_id} not found"
            raise NotFoundError(msg)

        held = await self.db.execute(
            select(UserBadge.badge_id, UserBadge.representative_order).where(UserBadge.user_id == user_id)
        )
        held_rows = held.all()
        earned_ids = [row.badge_id for row in held_rows]
        orders = [row.representative_order for row in held_rows if row.representative_order is not None]

        stats = await self.lifetime_stats(user_id)
        grants = evaluate_badges(
            await self.catalog(),
            stats,
            earned_ids,
            orders,
            max_representative=self.max_representative,
        )
        if not grants:
            return BadgeEvaluation(awarded=[], total_badges=len(earned_ids))

        now = datetime.now(timezone.utc)
        for grant in grants:
            self.db.add(UserBadge(
                user_id=user_id,
                badge_id=grant.rule.badge_id,
                earned_at=now,
                representative_order=grant.representative_order,
            ))

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("badge_award_race", user_id=user_id)
            return BadgeEvaluation(awarded=[], total_badges=await count_badges(self.db, user_id))

        awarded = [grant.rule.slug for grant in grants]
        for grant in grants:
            logger.info(
                "badge_awarded",
                user_id=user_id,
                badge=grant.rule.slug,
                representative_order=grant.representative_order,
            )
            await publish_event(self.redis, BADGE_EARNED_CHANNEL, {
                "user_id": user_id,
                "badge_slug": grant.rule.slug,
                "representative_order": grant.representative_order,
            })

        return BadgeEvaluation(awarded=awarded, total_badges=len(earned_ids) + len(grants))
