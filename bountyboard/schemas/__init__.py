"""Pydantic schemas package."""

from bountyboard.schemas.achievement import (
    AchievementCheckResponse,
    AchievementProgressRead,
    AchievementSnapshotRead,
    EarnedAchievementRead,
    LeaderboardEntry,
    LeaderboardResponse,
    SystemStatsResponse,
    UserAchievementsResponse,
)
from bountyboard.schemas.claim import ClaimRead, ClaimResponse
from bountyboard.schemas.participation import (
    CompleteBountyRequest,
    CompletionResponse,
    EarningsResponse,
    ParticipationRead,
    RegistrationResponse,
)

__all__ = [
    "AchievementCheckResponse",
    "AchievementProgressRead",
    "AchievementSnapshotRead",
    "ClaimRead",
    "ClaimResponse",
    "CompleteBountyRequest",
    "CompletionResponse",
    "EarnedAchievementRead",
    "EarningsResponse",
    "LeaderboardEntry",
    "LeaderboardResponse",
    "ParticipationRead",
    "RegistrationResponse",
    "SystemStatsResponse",
    "UserAchievementsResponse",
]
