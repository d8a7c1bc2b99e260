"""User accounts: social-login registration, profile edits, public profile."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from streakup.db.models import Challenge, User
from streakup.exceptions import NotFoundError
from streakup.gamification.badge_engine import count_badges
from streakup.progress.store import list_for_user
from streakup.progress.streaks import as_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PROVIDERS = frozenset({"kakao", "google"})
RECENT_CHALLENGES_LIMIT = 5


class NicknameTakenError(ValueError):
    """Another user already uses this nickname."""


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Fetch a user.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        msg = f"User {user_id} not found"
        raise NotFoundError(msg)
    return user


async def get_or_create_user(
    db: AsyncSession,
    provider: str,
    social_id: str,
    nickname: str | None = None,
    profile_image: str | None = None,
) -> tuple[User, bool]:
    """Find the account for a social identity, creating it on first login.

    Returns (user, created).

    Raises:
        ValueError: Unknown provider.
    """
    if provider not in PROVIDERS:
        msg = f"Unsupported provider: {provider}"
        raise ValueError(msg)

    result = await db.execute(select(User).where(User.social_id == social_id))
    user = result.scalar_one_or_none()
    if user is not None:
        return user, False

    user = User(
        provider=provider,
        social_id=social_id,
        nickname=nickname,
        profile_image=profile_image,
        grade="bronze",
        trust_score=0.0,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent first login for the same identity, or a nickname clash.
        await db.rollback()
        result = await db.execute(select(User).where(User.social_id == social_id))
        user = result.scalar_one_or_none()
        if user is None:
            msg = "Nickname already taken"
            raise NicknameTakenError(msg) from None
        return user, False

    logger.info("user_registered", user_id=user.id, provider=provider)
    return user, True


async def update_profile(
    db: AsyncSession,
    user: User,
    nickname: str | None = None,
    profile_image: str | None = None,
) -> User:
    """
    Update profile fields.

    Raises:
        NicknameTakenError: If another user has the nickname.
    """
    if nickname is not None and nickname != user.nickname:
        result = await db.execute(select(User.id).where(User.nickname == nickname, User.id != user.id))
        if result.scalar_one_or_none() is not None:
            msg = "Nickname already taken"
            raise NicknameTakenError(msg)
        user.nickname = nickname
    if profile_image is not None:
        user.profile_image = profile_image

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        msg = "Nickname already taken"
        raise NicknameTakenError(msg) from None
    return user


async def get_public_profile(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """User display fields with lifetime stats and most recently joined challenges.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = await get_user(db, user_id)
    records = await list_for_user(db, user_id)

    total_challenges = len(records)
    recent_records = sorted(records, key=lambda r: (as_utc(r.start_date), r.id), reverse=True)[:RECENT_CHALLENGES_LIMIT]
    titles: dict[int, str] = {}
    if recent_records:
        result = await db.execute(
            select(Challenge.id, Challenge.title).where(Challenge.id.in_([r.challenge_id for r in recent_records]))
        )
        titles = {row.id: row.title for row in result}

    return {
        "user": user,
        "badge_count": await count_badges(db, user_id),
        "stats": {
            "total_challenges": total_challenges,
            "total_score": sum(r.score for r in records),
            "total_completions": sum(r.total_completions for r in records),
            "max_streak_count": max((r.max_streak_count for r in records), default=0),
            "average_streak": (
                round(sum(r.max_streak_count for r in records) / total_challenges, 2) if total_challenges else 0.0
            ),
        },
        "recent_challenges": [
            {
                "challenge_id": r.challenge_id,
                "title": titles.get(r.challenge_id, ""),
                "score": r.score,
                "current_streak_count": r.current_streak_count,
            }
            for r in recent_records
        ],
    }
