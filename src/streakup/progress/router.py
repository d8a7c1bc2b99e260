"""Progress endpoints: the caller's records, today's to-do list and stats."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.auth.dependencies import get_current_user
from streakup.database import get_session
from streakup.db.models import User, UserChallenge
from streakup.exceptions import NotFoundError
from streakup.progress.schemas import (
    ChallengeBrief,
    CompletableEntry,
    CompletableResponse,
    CompletionPhoto,
    ParticipatingEntry,
    ParticipatingResponse,
    ProgressDetail,
    ProgressSummary,
    RecordStats,
    UserStatsResponse,
)
from streakup.progress.service import (
    get_progress_detail,
    get_user_stats,
    list_completable_today,
    list_participating,
    record_stats,
)
from streakup.progress.streaks import utc_today

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


def progress_detail(record: UserChallenge) -> ProgressDetail:
    return ProgressDetail(
        **ProgressSummary.model_validate(record).model_dump(),
        completed_dates=record.completed_dates,
        completion_photos=[CompletionPhoto(day=d, photo_url=url) for d, url in record.completion_photos],
    )


@router.get("/me", response_model=ParticipatingResponse)
async def my_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ParticipatingResponse:
    """Every challenge the caller joined with its progress and derived stats."""
    now = datetime.now(timezone.utc)
    pairs = await list_participating(db, user.id)
    return ParticipatingResponse(
        challenges=[
            ParticipatingEntry(
                progress=progress_detail(record),
                challenge=ChallengeBrief.model_validate(challenge),
                stats=RecordStats(**record_stats(record, now)),
            )
            for record, challenge in pairs
        ],
        total=len(pairs),
    )


@router.get("/completable-today", response_model=CompletableResponse)
async def completable_today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompletableResponse:
    now = datetime.now(timezone.utc)
    pairs = await list_completable_today(db, user.id, now)
    return CompletableResponse(
        challenges=[
            CompletableEntry(
                progress=ProgressSummary.model_validate(record),
                challenge=ChallengeBrief.model_validate(challenge),
            )
            for record, challenge in pairs
        ],
        total=len(pairs),
        today=utc_today(now),
    )


@router.get("/stats", response_model=UserStatsResponse)
async def my_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserStatsResponse:
    return UserStatsResponse(**await get_user_stats(db, user.id))


@router.get("/me/{challenge_id}", response_model=ParticipatingEntry)
async def my_progress_detail(
    challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ParticipatingEntry:
    try:
        record, challenge = await get_progress_detail(db, user.id, challenge_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ParticipatingEntry(
        progress=progress_detail(record),
        challenge=ChallengeBrief.model_validate(challenge),
        stats=RecordStats(**record_stats(record, datetime.now(timezone.utc))),
    )
