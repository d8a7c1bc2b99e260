"""Challenge endpoints: browse, create, join/leave and daily completion."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.auth.dependencies import get_current_user
from streakup.challenges.schemas import (
    ChallengeCreateRequest,
    ChallengeListResponse,
    ChallengeResponse,
    ChallengeUpdateRequest,
    JoinResponse,
    ViewCountResponse,
)
from streakup.challenges.service import (
    ChallengeSort,
    count_participants,
    create_challenge,
    delete_challenge,
    get_challenge,
    increase_view_count,
    join_challenge,
    leave_challenge,
    list_challenges,
    update_challenge,
)
from streakup.database import get_session
from streakup.db.models import Challenge, User
from streakup.exceptions import (
    AlreadyCompletedTodayError,
    AlreadyJoinedError,
    ChallengeFullError,
    ChallengeOwnershipError,
    NotFoundError,
)
from streakup.progress.recorder import record_completion
from streakup.progress.schemas import CompleteRequest, CompletionResponse
from streakup.redis_client import get_redis_or_none
from streakup.users.schemas import UserSummary

router = APIRouter(prefix="/api/v1/challenges", tags=["Challenges"])


def _challenge_response(challenge: Challenge, creator: User | None, participant_count: int = 0) -> ChallengeResponse:
    return ChallengeResponse(
        id=challenge.id,
        title=challenge.title,
        description=challenge.description,
        rules=challenge.rules,
        cautions=challenge.cautions,
        category=challenge.category,
        image_url=challenge.image_url,
        created_by=UserSummary.model_validate(creator) if creator else UserSummary(id=challenge.created_by),
        view_count=challenge.view_count,
        completion_rate=challenge.completion_rate,
        max_participants=challenge.max_participants,
        participant_count=participant_count,
        frequency_type=challenge.frequency_type,
        frequency_interval=challenge.frequency_interval,
        created_at=challenge.created_at,
    )


@router.get("", response_model=ChallengeListResponse)
async def get_challenges(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=100),
    sort_by: ChallengeSort = Query(ChallengeSort.CREATED_AT),
    db: AsyncSession = Depends(get_session),
) -> ChallengeListResponse:
    rows, total = await list_challenges(db, page=page, limit=limit, search=search, sort_by=sort_by)
    return ChallengeListResponse(
        challenges=[_challenge_response(challenge, creator) for challenge, creator in rows],
        total=total,
        total_pages=-(-total // limit),
        page=page,
    )


@router.post("", response_model=ChallengeResponse, status_code=201)
async def post_challenge(
    body: ChallengeCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ChallengeResponse:
    challenge = await create_challenge(db, user, **body.model_dump())
    return _challenge_response(challenge, user)


@router.get("/{challenge_id}", response_model=ChallengeResponse)
async def get_challenge_detail(
    challenge_id: int,
    db: AsyncSession = Depends(get_session),
) -> ChallengeResponse:
    try:
        challenge = await get_challenge(db, challenge_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    creator = await db.get(User, challenge.created_by)
    return _challenge_response(challenge, creator, await count_participants(db, challenge_id))


@router.patch("/{challenge_id}", response_model=ChallengeResponse)
async def patch_challenge(
    challenge_id: int,
    body: ChallengeUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ChallengeResponse:
    try:
        challenge = await update_challenge(db, challenge_id, user, body.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ChallengeOwnershipError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return _challenge_response(challenge, user, await count_participants(db, challenge_id))


@router.delete("/{challenge_id}", status_code=204)
async def remove_challenge(
    challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await delete_challenge(db, challenge_id, user)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ChallengeOwnershipError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return Response(status_code=204)


@router.patch("/{challenge_id}/view", response_model=ViewCountResponse)
async def bump_view_count(
    challenge_id: int,
    db: AsyncSession = Depends(get_session),
) -> ViewCountResponse:
    try:
        view_count = await increase_view_count(db, challenge_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ViewCountResponse(view_count=view_count)


@router.post("/{challenge_id}/join", response_model=JoinResponse, status_code=201)
async def join(
    challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> JoinResponse:
    try:
        record = await join_challenge(db, challenge_id, user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except (AlreadyJoinedError, ChallengeFullError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return JoinResponse(challenge_id=challenge_id, progress_id=record.id, start_date=record.start_date)


@router.delete("/{challenge_id}/leave", status_code=204)
async def leave(
    challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await leave_challenge(db, challenge_id, user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return Response(status_code=204)


@router.post("/{challenge_id}/complete", response_model=CompletionResponse)
async def complete(
    challenge_id: int,
    body: CompleteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompletionResponse:
    """Record today's completion. The photo is uploaded elsewhere; only its URL is stored."""
    try:
        result = await record_completion(db, user.id, challenge_id, body.photo_url, redis=get_redis_or_none())
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except AlreadyCompletedTodayError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return CompletionResponse(**asdict(result))
