"""Pydantic models for ranking endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from streakup.progress.schemas import ProgressSummary, RecordStats
from streakup.users.schemas import UserSummary


class GlobalRankingEntry(BaseModel):
    rank: int
    user: UserSummary
    total_score: int
    total_completions: int
    max_streak_count: int
    current_streak_sum: int
    challenge_count: int


class GlobalRankingResponse(BaseModel):
    rankings: list[GlobalRankingEntry]
    total: int
    total_pages: int
    page: int
    ranking_type: str


class ChallengeRankingEntry(BaseModel):
    rank: int
    user: UserSummary
    progress: ProgressSummary
    stats: RecordStats


class ChallengeInfo(BaseModel):
    id: int
    title: str
    category: str
    completion_rate: int


class ChallengeStats(BaseModel):
    total_participants: int
    average_score: float
    highest_score: int
    average_completions: float
    highest_completions: int
    average_streak: float
    highest_streak: int


class ChallengeRankingResponse(BaseModel):
    challenge: ChallengeInfo
    rankings: list[ChallengeRankingEntry]
    total: int
    total_pages: int
    page: int
    ranking_type: str
    challenge_stats: ChallengeStats


class MyRankStats(RecordStats):
    percentile: int


class MyRankResponse(BaseModel):
    rank: int
    total_participants: int
    progress: ProgressSummary
    stats: MyRankStats
    ranking_type: str
    value: int
