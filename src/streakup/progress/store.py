"""Progress store: persistence for per-(user, challenge) progress records.

No business rules live here: the recorder decides what changes, this module
only creates, fetches and deletes rows.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.db.models import UserChallenge
from streakup.exceptions import NotFoundError


async def create_progress(
    db: AsyncSession,
    user_id: int,
    challenge_id: int,
    start_date: datetime | None = None,
) -> UserChallenge:
    """Create a zeroed progress record. Caller commits."""
    record = UserChallenge(
        user_id=user_id,
        challenge_id=challenge_id,
        start_date=start_date or datetime.now(timezone.utc),
        score=0,
        total_completions=0,
        current_streak_count=0,
        max_streak_count=0,
        entries=[],
    )
    db.add(record)
    await db.flush()
    return record


async def find_progress(db: AsyncSession, user_id: int, challenge_id: int) -> UserChallenge | None:
    """Fetch a progress record by key, or None."""
    result = await db.execute(
        select(UserChallenge).where(
            UserChallenge.user_id == user_id,
            UserChallenge.challenge_id == challenge_id,
        )
    )
    return result.scalar_one_or_none()


async def get_progress(db: AsyncSession, user_id: int, challenge_id: int) -> UserChallenge:
    """Fetch a progress record by key.

    Raises:
        NotFoundError: If the user has not joined the challenge.
    """
    record = await find_progress(db, user_id, challenge_id)
    if record is None:
        msg = f"User {user_id} has not joined challenge {challenge_id}"
        raise NotFoundError(msg)
    return record


async def lock_progress(db: AsyncSession, user_id: int, challenge_id: int) -> UserChallenge:
    """Fetch a progress record for update.

    Takes a row lock (SELECT ... FOR UPDATE) so concurrent writers to the same
    key serialize; other keys are unaffected. populate_existing refreshes an
    instance already held by the session.

    Raises:
        NotFoundError: If the user has not joined the challenge.
    """
    result = await db.execute(
        select(UserChallenge)
        .where(
            UserChallenge.user_id == user_id,
            UserChallenge.challenge_id == challenge_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one_or_none()
    if record is None:
        msg = f"User {user_id} has not joined challenge {challenge_id}"
        raise NotFoundError(msg)
    return record


async def list_for_challenge(db: AsyncSession, challenge_id: int) -> list[UserChallenge]:
    """All progress records of a challenge."""
    result = await db.execute(
        select(UserChallenge)
        .where(UserChallenge.challenge_id == challenge_id)
        .order_by(UserChallenge.id)
    )
    return list(result.scalars().all())


async def list_for_user(db: AsyncSession, user_id: int) -> list[UserChallenge]:
    """All progress records of a user, oldest join first."""
    result = await db.execute(
        select(UserChallenge)
        .where(UserChallenge.user_id == user_id)
        .order_by(UserChallenge.start_date, UserChallenge.id)
    )
    return list(result.scalars().all())


async def delete_progress(db: AsyncSession, user_id: int, challenge_id: int) -> None:
    """Delete a progress record and its completion entries. Caller commits.

    Raises:
        NotFoundError: If the user has not joined the challenge.
    """
    record = await get_progress(db, user_id, challenge_id)
    await db.delete(record)
    await db.flush()
