"""User endpoints: own profile and public profiles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.auth.dependencies import get_current_user
from streakup.database import get_session
from streakup.db.models import User
from streakup.exceptions import NotFoundError
from streakup.users.schemas import (
    ProfileStats,
    ProfileUpdateRequest,
    PublicProfileResponse,
    RecentChallenge,
    UserResponse,
    UserSummary,
)
from streakup.users.service import NicknameTakenError, get_public_profile, update_profile

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def patch_me(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    try:
        user = await update_profile(db, user, nickname=body.nickname, profile_image=body.profile_image)
    except NicknameTakenError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_profile(user_id: int, db: AsyncSession = Depends(get_session)) -> PublicProfileResponse:
    """Public profile with lifetime challenge stats."""
    try:
        profile = await get_public_profile(db, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    user = profile["user"]
    return PublicProfileResponse(
        user=UserSummary.model_validate(user),
        trust_score=user.trust_score,
        badge_count=profile["badge_count"],
        stats=ProfileStats(**profile["stats"]),
        recent_challenges=[RecentChallenge(**c) for c in profile["recent_challenges"]],
    )
