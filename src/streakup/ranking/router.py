"""Ranking endpoints: global and per-challenge leaderboards."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.auth.dependencies import get_current_user
from streakup.config import get_settings
from streakup.database import get_session
from streakup.db.models import User
from streakup.exceptions import NotFoundError
from streakup.ranking.ordering import RankingMetric
from streakup.ranking.schemas import ChallengeRankingResponse, GlobalRankingResponse, MyRankResponse
from streakup.ranking.service import get_challenge_ranking, get_global_ranking, get_my_challenge_rank

router = APIRouter(prefix="/api/v1/rankings", tags=["Rankings"])


def _page_size(limit: int | None) -> int:
    settings = get_settings()
    if limit is None:
        return settings.ranking_default_page_size
    return min(limit, settings.ranking_max_page_size)


@router.get("", response_model=GlobalRankingResponse)
async def global_ranking(
    metric: RankingMetric = Query(RankingMetric.SCORE, alias="type"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> GlobalRankingResponse:
    """Users ranked across all their challenges."""
    data = await get_global_ranking(db, metric, page, _page_size(limit))
    return GlobalRankingResponse(**data)


@router.get("/challenges/{challenge_id}", response_model=ChallengeRankingResponse)
async def challenge_ranking(
    challenge_id: int,
    metric: RankingMetric = Query(RankingMetric.SCORE, alias="type"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> ChallengeRankingResponse:
    try:
        data = await get_challenge_ranking(db, challenge_id, metric, page, _page_size(limit))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ChallengeRankingResponse(**data)


@router.get("/challenges/{challenge_id}/me", response_model=MyRankResponse)
async def my_challenge_rank(
    challenge_id: int,
    metric: RankingMetric = Query(RankingMetric.SCORE, alias="type"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MyRankResponse:
    """The caller's rank; tied participants share a rank."""
    try:
        data = await get_my_challenge_rank(db, challenge_id, user.id, metric)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MyRankResponse(**data)
