"""Read endpoints over the caller's participations and balance."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from bountyboard.api import deps
from bountyboard.db.models.user import User
from bountyboard.schemas import EarningsResponse, ParticipationRead
from bountyboard.services.ledger import LedgerService

router = APIRouter(prefix="/participations", tags=["participations"])


@router.get("/my", response_model=list[ParticipationRead])
def list_my_participations(
    current_user: User = Depends(deps.get_current_user),
    ledger: LedgerService = Depends(deps.get_ledger_service),
) -> list[ParticipationRead]:
    participations = ledger.list_participations(current_user.id)
    return [ParticipationRead.model_validate(p) for p in participations]


@router.get("/my/earnings", response_model=EarningsResponse)
def get_my_earnings(
    current_user: User = Depends(deps.get_current_user),
    ledger: LedgerService = Depends(deps.get_ledger_service),
) -> EarningsResponse:
    """Points and berries derived from the ledger, with the spendable balance."""

    earnings = ledger.get_earnings(current_user.id)
    return EarningsResponse(
        user_id=current_user.id,
        total_points=earnings.total_points,
        total_berries_earned=earnings.total_berries_earned,
        total_berries_spent=earnings.total_berries_spent,
        net_berries=earnings.net_berries,
    )
