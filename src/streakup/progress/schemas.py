"""Pydantic models for progress endpoints and the completion result."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class ProgressSummary(BaseModel):
    id: int
    score: int
    total_completions: int
    current_streak_count: int
    max_streak_count: int
    start_date: datetime
    last_completion_date: date | None = None

    model_config = {"from_attributes": True}


class CompletionPhoto(BaseModel):
    day: date
    photo_url: str


class ProgressDetail(ProgressSummary):
    completed_dates: list[date] = []
    completion_photos: list[CompletionPhoto] = []


class RecordStats(BaseModel):
    days_since_start: int
    completion_rate: float
    active_days: int


class ChallengeBrief(BaseModel):
    id: int
    title: str
    category: str
    image_url: str | None = None
    frequency_type: str = "daily"
    completion_rate: int = 0

    model_config = {"from_attributes": True}


class ParticipatingEntry(BaseModel):
    progress: ProgressDetail
    challenge: ChallengeBrief
    stats: RecordStats


class ParticipatingResponse(BaseModel):
    challenges: list[ParticipatingEntry]
    total: int


class CompletableEntry(BaseModel):
    progress: ProgressSummary
    challenge: ChallengeBrief
    can_complete: bool = True


class CompletableResponse(BaseModel):
    challenges: list[CompletableEntry]
    total: int
    today: date


class CompleteRequest(BaseModel):
    photo_url: str = Field(min_length=1, max_length=2048)


class CompletionResponse(BaseModel):
    """Counters after a completion plus the outcome of each cascade stage."""

    score: int
    total_completions: int
    current_streak_count: int
    max_streak_count: int
    completed_date: date
    photo_url: str
    trust_score: float
    trust_score_increase: float
    grade: str
    total_badges: int
    badges_awarded: list[str]
    cascade_failures: list[str]


class StatsOverview(BaseModel):
    total_challenges: int
    active_challenges: int
    total_score: int
    total_completions: int


class StatsPerformance(BaseModel):
    max_streak_count: int
    current_active_streaks: int
    average_score: float
    average_completions: float
    completion_rate: float


class StatsTime(BaseModel):
    total_active_days: int
    average_active_days: float


class CategoryStat(BaseModel):
    category: str
    count: int
    total_score: int
    total_completions: int
    average_streak: float


class RecentActivity(BaseModel):
    challenge_id: int
    challenge_title: str
    category: str
    last_completion_date: date | None = None
    current_streak: int
    total_completions: int


class UserStatsResponse(BaseModel):
    overview: StatsOverview
    performance: StatsPerformance
    time_stats: StatsTime
    category_stats: list[CategoryStat]
    recent_activity: list[RecentActivity]
