"""Achievement API endpoints: snapshots, checks, leaderboard and cache admin."""
from __future__ import annotations

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from bountyboard.api import deps
from bountyboard.db.models.user import User
from bountyboard.schemas import (
    AchievementCheckResponse,
    AchievementProgressRead,
    AchievementSnapshotRead,
    EarnedAchievementRead,
    LeaderboardEntry,
    LeaderboardResponse,
    SystemStatsResponse,
    UserAchievementsResponse,
)
from bountyboard.services.achievement_service import AchievementService

router = APIRouter(prefix="/achievements", tags=["achievements"])


def _user_achievements(service: AchievementService, user_id: uuid.UUID) -> UserAchievementsResponse:
    snapshot = service.get_user_achievements(user_id)
    progress = service.get_achievement_progress(user_id)
    return UserAchievementsResponse(
        user_id=user_id,
        achievements=AchievementSnapshotRead.model_validate(snapshot.to_dict()),
        progress=AchievementProgressRead.model_validate(asdict(progress)),
    )


@router.get("/my", response_model=UserAchievementsResponse)
def get_my_achievements(
    current_user: User = Depends(deps.get_current_user),
    service: AchievementService = Depends(deps.get_achievement_service),
) -> UserAchievementsResponse:
    """Return the authenticated user's earned achievements and progress."""

    return _user_achievements(service, current_user.id)


@router.get("/users/{user_id}", response_model=UserAchievementsResponse)
def get_user_achievements(
    user_id: uuid.UUID,
    current_user: User = Depends(deps.get_current_user),
    service: AchievementService = Depends(deps.get_achievement_service),
) -> UserAchievementsResponse:
    if user_id != current_user.id and current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own achievements",
        )
    return _user_achievements(service, user_id)


@router.post("/check", response_model=AchievementCheckResponse)
def check_achievements(
    current_user: User = Depends(deps.get_current_user),
    service: AchievementService = Depends(deps.get_achievement_service),
) -> AchievementCheckResponse:
    """Manually trigger an achievement check for the authenticated user."""

    newly_earned = service.check_for_new_achievements(current_user.id)
    return AchievementCheckResponse(
        new_achievements=[EarnedAchievementRead.model_validate(asdict(a)) for a in newly_earned],
        total_new=len(newly_earned),
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    limit: int = Query(10, description="Number of users to return (1-100)"),
    _: User = Depends(deps.get_current_user),
    service: AchievementService = Depends(deps.get_achievement_service),
) -> LeaderboardResponse:
    rows = service.get_leaderboard(limit)
    return LeaderboardResponse(
        leaderboard=[
            LeaderboardEntry(
                rank=position,
                user_id=row.user_id,
                name=row.name,
                completed_bounties=row.completed_bounties,
                total_points=row.total_points,
                total_berries=row.total_berries,
            )
            for position, row in enumerate(rows, start=1)
        ],
        limit=limit,
    )


@router.get("/system/stats", response_model=SystemStatsResponse)
def get_system_stats(
    _: User = Depends(deps.require_admin),
    service: AchievementService = Depends(deps.get_achievement_service),
) -> SystemStatsResponse:
    return SystemStatsResponse.model_validate(asdict(service.system_stats()))


@router.post("/cache/clear", status_code=status.HTTP_204_NO_CONTENT)
def clear_achievement_cache(
    _: User = Depends(deps.require_admin),
    service: AchievementService = Depends(deps.get_achievement_service),
) -> None:
    service.clear_cache()


@router.post("/cache/invalidate/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def invalidate_user_cache(
    user_id: uuid.UUID,
    _: User = Depends(deps.require_admin),
    service: AchievementService = Depends(deps.get_achievement_service),
) -> None:
    service.invalidate_user(user_id)
