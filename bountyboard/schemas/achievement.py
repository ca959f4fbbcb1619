"""Pydantic schemas for achievement endpoints."""
from __future__ import annotations

import uuid
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class EarnedAchievementRead(BaseModel):
    """An achievement the user currently satisfies."""

    id: str
    name: str
    description: str
    badge: str
    type: Literal["points_based", "activity_based", "special_badge"]
    threshold: Optional[float] = None
    points: Optional[int] = None
    percentage: Optional[int] = None
    activity_type: Optional[str] = None
    streak: Optional[int] = None
    completion_hours: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class NextMilestoneRead(BaseModel):
    name: str
    threshold: int
    remaining: int
    progress: int

    model_config = ConfigDict(from_attributes=True)


class FastestCompletionRead(BaseModel):
    title: str
    type: str
    hours: float
    points: int

    model_config = ConfigDict(from_attributes=True)


class ActivityBreakdownRead(BaseModel):
    type: str
    count: int
    points: int
    berries: int

    model_config = ConfigDict(from_attributes=True)


class AchievementStatisticsRead(BaseModel):
    total_points: int
    total_berries: int
    bounty_count: int
    completed_count: int
    achievement_count: int
    next_milestone: Optional[NextMilestoneRead] = None
    current_streak: int
    fastest_completion: Optional[FastestCompletionRead] = None
    activity_breakdown: list[ActivityBreakdownRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class AchievementSnapshotRead(BaseModel):
    """Earned achievements by category plus statistics."""

    points_based: list[EarnedAchievementRead] = Field(default_factory=list)
    activity_based: list[EarnedAchievementRead] = Field(default_factory=list)
    special_badges: list[EarnedAchievementRead] = Field(default_factory=list)
    statistics: AchievementStatisticsRead

    model_config = ConfigDict(from_attributes=True)


class AchievementProgressRead(BaseModel):
    earned_achievements: int
    next_milestone: Optional[NextMilestoneRead] = None
    recent_achievements: list[EarnedAchievementRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class UserAchievementsResponse(BaseModel):
    user_id: uuid.UUID
    achievements: AchievementSnapshotRead
    progress: AchievementProgressRead


class AchievementCheckResponse(BaseModel):
    """Response after checking for newly earned achievements."""

    new_achievements: list[EarnedAchievementRead] = Field(default_factory=list)
    total_new: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: uuid.UUID
    name: str
    completed_bounties: int
    total_points: int
    total_berries: int


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntry] = Field(default_factory=list)
    limit: int


class CacheStatsRead(BaseModel):
    backend: str
    size: int
    max_size: Optional[int] = None
    ttl_seconds: int
    hits: int
    misses: int

    model_config = ConfigDict(from_attributes=True)


class SystemStatsResponse(BaseModel):
    cache: CacheStatsRead
    users_with_completions: int
    cache_hit_rate: int

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "AchievementCheckResponse",
    "AchievementProgressRead",
    "AchievementSnapshotRead",
    "CacheStatsRead",
    "EarnedAchievementRead",
    "LeaderboardEntry",
    "LeaderboardResponse",
    "SystemStatsResponse",
    "UserAchievementsResponse",
]
