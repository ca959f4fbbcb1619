"""Pydantic models for reward claim endpoints."""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ClaimRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    reward_id: int
    berries_spent: int
    redeemable_code: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClaimResponse(BaseModel):
    """Result of a successful claim, including the balance left afterwards."""

    claim: ClaimRead
    reward_name: str
    berries_spent: int
    net_berries: int


__all__ = ["ClaimRead", "ClaimResponse"]
