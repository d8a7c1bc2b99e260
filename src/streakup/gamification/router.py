"""Badge endpoints: catalog, users' badges, showcase and manual re-check."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.auth.dependencies import get_current_user
from streakup.config import get_settings
from streakup.database import get_session
from streakup.db.models import User, UserBadge
from streakup.exceptions import BadgeConditionError, NotFoundError, RepresentativeBadgeError
from streakup.gamification.badge_engine import BadgeEngine
from streakup.gamification.badge_service import (
    create_badge,
    delete_badge,
    get_badges_by_ids,
    get_user_badges,
    list_badges,
    set_representative_badges,
    update_badge,
)
from streakup.gamification.grades import refresh_grade
from streakup.gamification.schemas import (
    AllBadgesResponse,
    BadgeCheckResponse,
    BadgeCreateRequest,
    BadgeLookupRequest,
    BadgeLookupResponse,
    BadgeResponse,
    BadgeUpdateRequest,
    EarnedBadgeResponse,
    RepresentativeBadgeResponse,
    RepresentativeUpdateRequest,
    RepresentativeUpdateResponse,
    UserBadgesResponse,
)
from streakup.redis_client import get_redis_or_none

router = APIRouter(prefix="/api/v1/badges", tags=["Badges"])


def _showcase(user_badges: list[UserBadge]) -> list[RepresentativeBadgeResponse]:
    return [
        RepresentativeBadgeResponse(badge=BadgeResponse.model_validate(ub.badge), order=ub.representative_order)
        for ub in user_badges
    ]


# ── Catalog ──


@router.get("", response_model=AllBadgesResponse)
async def get_badges(db: AsyncSession = Depends(get_session)) -> AllBadgesResponse:
    """All badge definitions in evaluation order."""
    badges = await list_badges(db)
    return AllBadgesResponse(badges=[BadgeResponse.model_validate(b) for b in badges])


@router.post("/lookup", response_model=BadgeLookupResponse)
async def lookup_badges(body: BadgeLookupRequest, db: AsyncSession = Depends(get_session)) -> BadgeLookupResponse:
    badges, missing = await get_badges_by_ids(db, body.ids)
    return BadgeLookupResponse(
        badges=[BadgeResponse.model_validate(b) for b in badges],
        found=len(badges),
        total=len(body.ids),
        not_found=missing,
    )


@router.post("", response_model=BadgeResponse, status_code=201)
async def post_badge(
    body: BadgeCreateRequest,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeResponse:
    try:
        badge = await create_badge(db, **body.model_dump())
    except BadgeConditionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return BadgeResponse.model_validate(badge)


@router.patch("/{slug}", response_model=BadgeResponse)
async def patch_badge(
    slug: str,
    body: BadgeUpdateRequest,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeResponse:
    try:
        badge = await update_badge(db, slug, body.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except BadgeConditionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return BadgeResponse.model_validate(badge)


@router.delete("/{slug}", status_code=204)
async def remove_badge(
    slug: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await delete_badge(db, slug)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return Response(status_code=204)


# ── Users' badges ──


@router.get("/users/{user_id}", response_model=UserBadgesResponse)
async def user_badges(user_id: int, db: AsyncSession = Depends(get_session)) -> UserBadgesResponse:
    """A user's earned badges and their showcase, sorted by slot."""
    try:
        held = await get_user_badges(db, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return UserBadgesResponse(
        user_id=user_id,
        representative=_showcase(held["representative"]),
        earned=[
            EarnedBadgeResponse(
                badge=BadgeResponse.model_validate(ub.badge),
                earned_at=ub.earned_at,
                representative_order=ub.representative_order,
            )
            for ub in held["earned"]
        ],
        total_earned=len(held["earned"]),
    )


@router.put("/representative", response_model=RepresentativeUpdateResponse)
async def put_representative(
    body: RepresentativeUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RepresentativeUpdateResponse:
    try:
        showcase = await set_representative_badges(db, user.id, [(s.badge_id, s.order) for s in body.badges])
    except RepresentativeBadgeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return RepresentativeUpdateResponse(representative=_showcase(showcase))


@router.post("/check", response_model=BadgeCheckResponse)
async def check_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeCheckResponse:
    """Re-run badge evaluation and grade classification for the caller."""
    engine = BadgeEngine(
        db,
        redis=get_redis_or_none(),
        max_representative=get_settings().representative_badge_slots,
    )
    evaluation = await engine.evaluate_user(user.id)
    await refresh_grade(db, user.id)
    return BadgeCheckResponse(
        awarded=evaluation.awarded,
        total_badges=evaluation.total_badges,
        grade=user.grade,
    )
