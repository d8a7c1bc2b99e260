"""Pydantic models for badge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class BadgeResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    icon_url: str
    category: str
    rarity: str
    condition_type: str
    threshold: int
    category_target: str | None = None
    condition_description: str
    sort_order: int

    model_config = {"from_attributes": True}


class AllBadgesResponse(BaseModel):
    badges: list[BadgeResponse]


class BadgeCreateRequest(BaseModel):
    slug: str = Field(min_length=1, max_length=64, pattern=r"^[a-z0-9_]+$")
    name: str = Field(min_length=1, max_length=128)
    description: str = Field(min_length=1)
    icon_url: str = ""
    category: str = "achievement"
    rarity: str = "common"
    condition_type: str
    threshold: int
    category_target: str | None = None
    condition_description: str = ""
    sort_order: int = 0


class BadgeUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    icon_url: str | None = None
    category: str | None = None
    rarity: str | None = None
    condition_type: str | None = None
    threshold: int | None = None
    category_target: str | None = None
    condition_description: str | None = None
    sort_order: int | None = None


class BadgeLookupRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


class BadgeLookupResponse(BaseModel):
    badges: list[BadgeResponse]
    found: int
    total: int
    not_found: list[int] = []


class EarnedBadgeResponse(BaseModel):
    badge: BadgeResponse
    earned_at: datetime
    representative_order: int | None = None


class RepresentativeBadgeResponse(BaseModel):
    badge: BadgeResponse
    order: int


class UserBadgesResponse(BaseModel):
    user_id: int
    representative: list[RepresentativeBadgeResponse]
    earned: list[EarnedBadgeResponse]
    total_earned: int


class RepresentativeSelection(BaseModel):
    badge_id: int
    order: int


class RepresentativeUpdateRequest(BaseModel):
    badges: list[RepresentativeSelection]


class RepresentativeUpdateResponse(BaseModel):
    representative: list[RepresentativeBadgeResponse]


class BadgeCheckResponse(BaseModel):
    awarded: list[str]
    total_badges: int
    grade: str
