"""Challenge lifecycle: create, browse, join, leave, owner edits."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.challenges.completion_rate import recompute_completion_rate
from streakup.db.models import Challenge, ChallengeParticipant, CompletionEntry, User, UserChallenge
from streakup.exceptions import (
    AlreadyJoinedError,
    ChallengeFullError,
    ChallengeOwnershipError,
    NotFoundError,
)
from streakup.progress.store import create_progress, delete_progress, find_progress

logger = structlog.get_logger()

_EDITABLE_FIELDS = (
    "title",
    "description",
    "rules",
    "cautions",
    "category",
    "image_url",
    "max_participants",
    "frequency_type",
    "frequency_interval",
)


class ChallengeSort(str, Enum):
    CREATED_AT = "created_at"
    VIEW_COUNT = "view_count"
    COMPLETION_RATE = "completion_rate"


_SORT_COLUMNS = {
    ChallengeSort.CREATED_AT: Challenge.created_at,
    ChallengeSort.VIEW_COUNT: Challenge.view_count,
    ChallengeSort.COMPLETION_RATE: Challenge.completion_rate,
}


async def get_challenge(db: AsyncSession, challenge_id: int) -> Challenge:
    """Fetch a challenge.

    Raises:
        NotFoundError: If it does not exist.
    """
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        msg = f"Challenge {challenge_id} not found"
        raise NotFoundError(msg)
    return challenge


async def count_participants(db: AsyncSession, challenge_id: int) -> int:
    result = await db.execute(
        select(func.count(ChallengeParticipant.id)).where(ChallengeParticipant.challenge_id == challenge_id)
    )
    return int(result.scalar_one())


async def create_challenge(db: AsyncSession, creator: User, **fields: Any) -> Challenge:
    """Create a challenge owned by creator. Field validation happens at the API layer."""
    challenge = Challenge(created_by=creator.id, view_count=0, completion_rate=0, **fields)
    db.add(challenge)
    await db.commit()
    logger.info("challenge_created", challenge_id=challenge.id, user_id=creator.id, category=challenge.category)
    return challenge


async def list_challenges(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    sort_by: ChallengeSort = ChallengeSort.CREATED_AT,
) -> tuple[list[tuple[Challenge, User]], int]:
    """A page of challenges with their creators, newest/most-viewed/best-completed first."""
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(Challenge.title.ilike(pattern), Challenge.description.ilike(pattern)))

    query = (
        select(Challenge, User)
        .join(User, User.id == Challenge.created_by)
        .where(*filters)
        .order_by(_SORT_COLUMNS[sort_by].desc(), Challenge.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = [(row.Challenge, row.User) for row in await db.execute(query)]
    total = (await db.execute(select(func.count(Challenge.id)).where(*filters))).scalar_one()
    return rows, int(total)


async def increase_view_count(db: AsyncSession, challenge_id: int) -> int:
    """Atomically bump the view counter. Returns the new count.

    Raises:
        NotFoundError: If the challenge does not exist.
    """
    result = await db.execute(
        update(Challenge)
        .where(Challenge.id == challenge_id)
        .values(view_count=Challenge.view_count + 1)
        .returning(Challenge.view_count)
    )
    view_count = result.scalar_one_or_none()
    if view_count is None:
        await db.rollback()
        msg = f"Challenge {challenge_id} not found"
        raise NotFoundError(msg)
    await db.commit()
    return int(view_count)


async def update_challenge(db: AsyncSession, challenge_id: int, user: User, changes: dict[str, Any]) -> Challenge:
    """Apply owner edits.

    Raises:
        NotFoundError: If the challenge does not exist.
        ChallengeOwnershipError: If user did not create it.
    """
    challenge = await get_challenge(db, challenge_id)
    if challenge.created_by != user.id:
        msg = "Not authorized"
        raise ChallengeOwnershipError(msg)

    for field in _EDITABLE_FIELDS:
        if field in changes:
            setattr(challenge, field, changes[field])
    await db.commit()
    logger.info("challenge_updated", challenge_id=challenge_id, fields=sorted(changes))
    return challenge


async def delete_challenge(db: AsyncSession, challenge_id: int, user: User) -> None:
    """Delete a challenge together with its memberships and progress.

    Raises:
        NotFoundError: If the challenge does not exist.
        ChallengeOwnershipError: If user did not create it.
    """
    challenge = await get_challenge(db, challenge_id)
    if challenge.created_by != user.id:
        msg = "Not authorized"
        raise ChallengeOwnershipError(msg)

    record_ids = select(UserChallenge.id).where(UserChallenge.challenge_id == challenge_id)
    await db.execute(delete(CompletionEntry).where(CompletionEntry.user_challenge_id.in_(record_ids)))
    await db.execute(delete(UserChallenge).where(UserChallenge.challenge_id == challenge_id))
    await db.execute(delete(ChallengeParticipant).where(ChallengeParticipant.challenge_id == challenge_id))
    await db.delete(challenge)
    await db.commit()
    logger.info("challenge_deleted", challenge_id=challenge_id, user_id=user.id)


async def _refresh_rate(db: AsyncSession, challenge_id: int, user_id: int) -> None:
    """Recompute the completion rate after a membership change; a failure is logged, not raised."""
    try:
        await recompute_completion_rate(db, challenge_id)
    except Exception:
        await db.rollback()
        logger.error(
            "cascade_failed",
            stage="completion_rate",
            user_id=user_id,
            challenge_id=challenge_id,
            exc_info=True,
        )


async def join_challenge(
    db: AsyncSession,
    challenge_id: int,
    user_id: int,
    now: datetime | None = None,
) -> UserChallenge:
    """Join a challenge: membership row plus a zeroed progress record.

    Raises:
        NotFoundError: If the challenge does not exist.
        AlreadyJoinedError: If the user already participates.
        ChallengeFullError: If max_participants is reached.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    challenge = await get_challenge(db, challenge_id)

    if await find_progress(db, user_id, challenge_id) is not None:
        msg = "Already joined this challenge"
        raise AlreadyJoinedError(msg)
    if await count_participants(db, challenge_id) >= challenge.max_participants:
        msg = "Challenge is full"
        raise ChallengeFullError(msg)

    db.add(ChallengeParticipant(challenge_id=challenge_id, user_id=user_id, joined_at=now))
    try:
        record = await create_progress(db, user_id, challenge_id, start_date=now)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        msg = "Already joined this challenge"
        raise AlreadyJoinedError(msg) from None

    logger.info("challenge_joined", challenge_id=challenge_id, user_id=user_id)
    await _refresh_rate(db, challenge_id, user_id)
    return record


async def leave_challenge(db: AsyncSession, challenge_id: int, user_id: int) -> None:
    """Leave a challenge, discarding the progress record and its completions.

    Badges already earned are kept.

    Raises:
        NotFoundError: If the challenge does not exist or the user has not joined.
    """
    await get_challenge(db, challenge_id)
    await delete_progress(db, user_id, challenge_id)
    await db.execute(
        delete(ChallengeParticipant).where(
            ChallengeParticipant.challenge_id == challenge_id,
            ChallengeParticipant.user_id == user_id,
        )
    )
    await db.commit()

    logger.info("challenge_left", challenge_id=challenge_id, user_id=user_id)
    await _refresh_rate(db, challenge_id, user_id)
