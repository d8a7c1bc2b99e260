"""Pydantic models for challenge endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from streakup.users.schemas import UserSummary

Category = Literal["health", "exercise", "study", "hobby", "lifestyle", "social", "other"]
Frequency = Literal["daily", "weekly", "monthly"]


class ChallengeCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    description: str = Field(min_length=1)
    rules: str = Field(min_length=1)
    cautions: str = Field(min_length=1)
    category: Category
    image_url: str | None = None
    max_participants: int = Field(ge=1)
    frequency_type: Frequency = "daily"
    frequency_interval: int = Field(default=1, ge=1)


class ChallengeUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = Field(default=None, min_length=1)
    rules: str | None = Field(default=None, min_length=1)
    cautions: str | None = Field(default=None, min_length=1)
    category: Category | None = None
    image_url: str | None = None
    max_participants: int | None = Field(default=None, ge=1)
    frequency_type: Frequency | None = None
    frequency_interval: int | None = Field(default=None, ge=1)


class ChallengeResponse(BaseModel):
    id: int
    title: str
    description: str
    rules: str
    cautions: str
    category: str
    image_url: str | None = None
    created_by: UserSummary
    view_count: int
    completion_rate: int
    max_participants: int
    participant_count: int = 0
    frequency_type: str
    frequency_interval: int
    created_at: datetime | None = None


class ChallengeListResponse(BaseModel):
    challenges: list[ChallengeResponse]
    total: int
    total_pages: int
    page: int


class ViewCountResponse(BaseModel):
    view_count: int


class JoinResponse(BaseModel):
    challenge_id: int
    progress_id: int
    start_date: datetime
