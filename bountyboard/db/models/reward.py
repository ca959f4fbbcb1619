"""Reward and reward claim models."""
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from bountyboard.db.base import Base
from bountyboard.db.types import UTCDateTime


class Reward(Base):
    """An item claimable by spending berries."""

    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("berries_required >= 0", name="berries_required_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    berries_required = Column(Integer, nullable=False, default=0)
    expiry_date = Column(UTCDateTime)

    created_at = Column(UTCDateTime, server_default=func.now())

    claims = relationship("RewardClaim", back_populates="reward")


class RewardClaim(Base):
    """A user having spent berries on a reward; claimable once per user."""

    __tablename__ = "reward_claims"
    __table_args__ = (
        UniqueConstraint("user_id", "reward_id"),
        CheckConstraint("berries_spent >= 0", name="berries_spent_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reward_id = Column(
        Integer, ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    berries_spent = Column(Integer, nullable=False)
    redeemable_code = Column(String(64), nullable=False, unique=True)

    created_at = Column(UTCDateTime, nullable=False)

    user = relationship("User", back_populates="claims")
    reward = relationship("Reward", back_populates="claims")
