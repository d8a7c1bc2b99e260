"""Grade tiers derived from the number of earned badges.

Tier thresholds (inclusive lower bounds), highest first:
  diamond  40+
  gold     20-39
  silver   10-19
  bronze   0-9
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import structlog

from streakup.db.models import User
from streakup.exceptions import NotFoundError
from streakup.gamification.badge_engine import count_badges

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class Grade(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    DIAMOND = "diamond"


GRADE_THRESHOLDS: list[tuple[int, Grade]] = [
    (40, Grade.DIAMOND),
    (20, Grade.GOLD),
    (10, Grade.SILVER),
]


def classify_grade(badge_count: int) -> Grade:
    """Map a badge count to its grade tier."""
    for min_badges, grade in GRADE_THRESHOLDS:
        if badge_count >= min_badges:
            return grade
    return Grade.BRONZE


async def apply_grade(db: AsyncSession, user: User, badge_count: int) -> bool:
    """Store the grade for badge_count on user. Returns True if it changed.

    Only flushes when the tier differs from the stored one.
    """
    new_grade = classify_grade(badge_count).value
    if user.grade == new_grade:
        return False

    old_grade = user.grade
    user.grade = new_grade
    await db.flush()
    logger.info(
        "grade_changed",
        user_id=user.id,
        old_grade=old_grade,
        new_grade=new_grade,
        badge_count=badge_count,
    )
    return True


async def refresh_grade(db: AsyncSession, user_id: int) -> bool:
    """Reclassify a user's grade from their current badge count and commit.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        msg = f"User {user_id} not found"
        raise NotFoundError(msg)
    changed = await apply_grade(db, user, await count_badges(db, user_id))
    if changed:
        await db.commit()
    return changed
