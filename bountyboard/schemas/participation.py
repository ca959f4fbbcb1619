"""Pydantic models for bounty participation endpoints."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from bountyboard.schemas.achievement import EarnedAchievementRead


class ParticipationRead(BaseModel):
    """A participation record as stored in the ledger."""

    id: uuid.UUID
    user_id: uuid.UUID
    bounty_id: int
    status: str
    points_earned: int
    berries_earned: int
    created_at: datetime
    completed_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RegistrationResponse(BaseModel):
    participation: ParticipationRead
    registered_bounty_ids: list[int] = Field(default_factory=list)


class CompleteBountyRequest(BaseModel):
    """Payout for a completion; amounts are range-checked by the ledger."""

    user_id: Optional[uuid.UUID] = Field(
        default=None, description="Completing user; defaults to the caller"
    )
    points_earned: int = 0
    berries_earned: int = 0

    model_config = ConfigDict(extra="forbid")


class CompletionResponse(BaseModel):
    participation: ParticipationRead
    new_achievements: list[EarnedAchievementRead] = Field(default_factory=list)


class EarningsResponse(BaseModel):
    user_id: uuid.UUID
    total_points: int
    total_berries_earned: int
    total_berries_spent: int
    net_berries: int


__all__ = [
    "CompleteBountyRequest",
    "CompletionResponse",
    "EarningsResponse",
    "ParticipationRead",
    "RegistrationResponse",
]
