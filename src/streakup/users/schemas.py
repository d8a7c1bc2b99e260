"""Pydantic models for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserSummary(BaseModel):
    """Display fields embedded in rankings and challenge listings."""

    id: int
    nickname: str | None = None
    profile_image: str | None = None
    grade: str = "bronze"

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: int
    provider: str
    nickname: str | None = None
    profile_image: str | None = None
    grade: str
    trust_score: float
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProfileUpdateRequest(BaseModel):
    nickname: str | None = Field(default=None, min_length=2, max_length=64)
    profile_image: str | None = Field(default=None, max_length=2048)


class ProfileStats(BaseModel):
    total_challenges: int
    total_score: int
    total_completions: int
    max_streak_count: int
    average_streak: float


class RecentChallenge(BaseModel):
    challenge_id: int
    title: str
    score: int
    current_streak_count: int


class PublicProfileResponse(BaseModel):
    user: UserSummary
    trust_score: float
    badge_count: int
    stats: ProfileStats
    recent_challenges: list[RecentChallenge]
