"""Default badge catalog, inserted at startup when missing."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.db.models import BadgeDefinition

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # Completions
    {
        "slug": "first_step",
        "name": "First Step",
        "description": "Complete a challenge for the first time",
        "category": "achievement",
        "rarity": "common",
        "condition_type": "completions",
        "threshold": 1,
        "condition_description": "1 completion",
        "sort_order": 1,
    },
    {
        "slug": "completions_5",
        "name": "Warming Up",
        "description": "Five completions across your challenges",
        "category": "achievement",
        "rarity": "common",
        "condition_type": "completions",
        "threshold": 5,
        "condition_description": "5 completions",
        "sort_order": 2,
    },
    {
        "slug": "completions_30",
        "name": "Habit Former",
        "description": "Thirty completions. It's a habit now.",
        "category": "achievement",
        "rarity": "rare",
        "condition_type": "completions",
        "threshold": 30,
        "condition_description": "30 completions",
        "sort_order": 3,
    },
    {
        "slug": "completions_100",
        "name": "Centurion",
        "description": "One hundred completions",
        "category": "achievement",
        "rarity": "epic",
        "condition_type": "completions",
        "threshold": 100,
        "condition_description": "100 completions",
        "sort_order": 4,
    },
    # Streaks
    {
        "slug": "streak_3",
        "name": "Three in a Row",
        "description": "Complete on three consecutive days",
        "category": "achievement",
        "rarity": "common",
        "condition_type": "streak",
        "threshold": 3,
        "condition_description": "3-day streak",
        "sort_order": 10,
    },
    {
        "slug": "streak_7",
        "name": "Full Week",
        "description": "A seven-day streak in one challenge",
        "category": "achievement",
        "rarity": "rare",
        "condition_type": "streak",
        "threshold": 7,
        "condition_description": "7-day streak",
        "sort_order": 11,
    },
    {
        "slug": "streak_30",
        "name": "Unbroken Month",
        "description": "Thirty days without missing once",
        "category": "achievement",
        "rarity": "legendary",
        "condition_type": "streak",
        "threshold": 30,
        "condition_description": "30-day streak",
        "sort_order": 12,
    },
    # Score / breadth
    {
        "slug": "score_500",
        "name": "High Scorer",
        "description": "Reach 500 points across all challenges",
        "category": "achievement",
        "rarity": "rare",
        "condition_type": "score",
        "threshold": 500,
        "condition_description": "500 points",
        "sort_order": 20,
    },
    {
        "slug": "challenges_3",
        "name": "Explorer",
        "description": "Join three different challenges",
        "category": "achievement",
        "rarity": "common",
        "condition_type": "challenges",
        "threshold": 3,
        "condition_description": "3 challenges joined",
        "sort_order": 21,
    },
    {
        "slug": "days_50",
        "name": "Regular",
        "description": "Be active on fifty days",
        "category": "achievement",
        "rarity": "epic",
        "condition_type": "days",
        "threshold": 50,
        "condition_description": "50 active days",
        "sort_order": 22,
    },
    # Categories
    {
        "slug": "exercise_10",
        "name": "Athlete",
        "description": "Ten completions in exercise challenges",
        "category": "exercise",
        "rarity": "rare",
        "condition_type": "category_completions",
        "threshold": 10,
        "category_target": "exercise",
        "condition_description": "10 exercise completions",
        "sort_order": 30,
    },
    {
        "slug": "study_10",
        "name": "Scholar",
        "description": "Ten completions in study challenges",
        "category": "study",
        "rarity": "rare",
        "condition_type": "category_completions",
        "threshold": 10,
        "category_target": "study",
        "condition_description": "10 study completions",
        "sort_order": 31,
    },
    {
        "slug": "health_10",
        "name": "Well Kept",
        "description": "Ten completions in health challenges",
        "category": "health",
        "rarity": "rare",
        "condition_type": "category_completions",
        "threshold": 10,
        "category_target": "health",
        "condition_description": "10 health completions",
        "sort_order": 32,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Insert catalog entries whose slug is not present yet. Returns how many were added."""
    result = await db.execute(select(BadgeDefinition.slug))
    existing = set(result.scalars().all())

    added = 0
    for badge_data in BADGE_SEED_DATA:
        if badge_data["slug"] in existing:
            continue
        db.add(BadgeDefinition(**badge_data))
        added += 1

    if added:
        await db.commit()
    logger.info("Seeded %d badge definitions", added)
    return added
