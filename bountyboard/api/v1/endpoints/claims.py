"""Reward claim endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from bountyboard.api import deps
from bountyboard.db.models.user import User
from bountyboard.schemas import ClaimRead, ClaimResponse
from bountyboard.services.ledger import LedgerService

rewards_router = APIRouter(prefix="/rewards", tags=["claims"])
router = APIRouter(prefix="/claims", tags=["claims"])


@rewards_router.post(
    "/{reward_id}/claim",
    response_model=ClaimResponse,
    status_code=status.HTTP_201_CREATED,
)
def claim_reward(
    reward_id: int,
    current_user: User = Depends(deps.get_current_user),
    ledger: LedgerService = Depends(deps.get_ledger_service),
) -> ClaimResponse:
    """Spend the caller's berries on a reward."""

    result = ledger.claim(current_user.id, reward_id)
    return ClaimResponse(
        claim=ClaimRead.model_validate(result.claim),
        reward_name=result.reward_name,
        berries_spent=result.berries_spent,
        net_berries=result.net_berries,
    )


@router.get("/my", response_model=list[ClaimRead])
def list_my_claims(
    current_user: User = Depends(deps.get_current_user),
    ledger: LedgerService = Depends(deps.get_ledger_service),
) -> list[ClaimRead]:
    return [ClaimRead.model_validate(c) for c in ledger.list_claims(current_user.id)]


@router.get("/code/{code}", response_model=ClaimRead)
def validate_redeemable_code(
    code: str,
    _: User = Depends(deps.require_creator_or_admin),
    ledger: LedgerService = Depends(deps.get_ledger_service),
) -> ClaimRead:
    """Look up the claim behind a redeemable code."""

    return ClaimRead.model_validate(ledger.validate_redeemable_code(code))
