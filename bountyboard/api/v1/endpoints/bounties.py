"""Bounty participation endpoints: register, complete and cancel."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status

from bountyboard.api import deps
from bountyboard.db.models.user import User
from bountyboard.schemas import (
    CompleteBountyRequest,
    CompletionResponse,
    EarnedAchievementRead,
    ParticipationRead,
    RegistrationResponse,
)
from bountyboard.services.achievement_service import AchievementService
from bountyboard.services.ledger import LedgerService

router = APIRouter(prefix="/bounties", tags=["bounties"])


@router.post(
    "/{bounty_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_for_bounty(
    bounty_id: int,
    current_user: User = Depends(deps.get_current_user),
    ledger: LedgerService = Depends(deps.get_ledger_service),
) -> RegistrationResponse:
    """Register the authenticated user for a bounty."""

    result = ledger.register(current_user.id, bounty_id)
    return RegistrationResponse(
        participation=ParticipationRead.model_validate(result.participation),
        registered_bounty_ids=result.registered_bounty_ids,
    )


@router.post("/{bounty_id}/complete", response_model=CompletionResponse)
def complete_bounty(
    bounty_id: int,
    payload: CompleteBountyRequest,
    current_user: User = Depends(deps.get_current_user),
    ledger: LedgerService = Depends(deps.get_ledger_service),
    achievements: AchievementService = Depends(deps.get_achievement_service),
) -> CompletionResponse:
    """Complete a bounty for the caller, or for another user when privileged."""

    user_id = payload.user_id or current_user.id
    if user_id != current_user.id and not current_user.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only faculty, creators and admins can complete bounties for other users",
        )

    previous = achievements.snapshot_before_change(user_id)
    participation = ledger.complete(
        user_id, bounty_id, payload.points_earned, payload.berries_earned
    )
    new_achievements = achievements.check_for_new_achievements(user_id, previous=previous)
    return CompletionResponse(
        participation=ParticipationRead.model_validate(participation),
        new_achievements=[
            EarnedAchievementRead.model_validate(asdict(a)) for a in new_achievements
        ],
    )


@router.post("/{bounty_id}/cancel", response_model=ParticipationRead)
def cancel_registration(
    bounty_id: int,
    current_user: User = Depends(deps.get_current_user),
    ledger: LedgerService = Depends(deps.get_ledger_service),
) -> ParticipationRead:
    """Withdraw the authenticated user's registration."""

    participation = ledger.cancel(current_user.id, bounty_id)
    return ParticipationRead.model_validate(participation)
