"""Bounty and participation models."""
import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from bountyboard.db.base import Base
from bountyboard.db.types import UTCDateTime


class ParticipationStatus(str, enum.Enum):
    REGISTERED = "registered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Bounty(Base):
    """A task users register for and later complete for a payout."""

    __tablename__ = "bounties"
    __table_args__ = (
        CheckConstraint("alloted_points >= 0", name="alloted_points_non_negative"),
        CheckConstraint("alloted_berries >= 0", name="alloted_berries_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(String(50), nullable=False, default="other", index=True)
    alloted_points = Column(Integer, nullable=False, default=0)
    alloted_berries = Column(Integer, nullable=False, default=0)
    scheduled_date = Column(UTCDateTime)
    venue = Column(String(255))
    capacity = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, server_default=func.now())

    participations = relationship("BountyParticipation", back_populates="bounty")


class BountyParticipation(Base):
    """One user's engagement with one bounty."""

    __tablename__ = "bounty_participations"
    __table_args__ = (
        UniqueConstraint("user_id", "bounty_id"),
        CheckConstraint("points_earned >= 0", name="points_earned_non_negative"),
        CheckConstraint("berries_earned >= 0", name="berries_earned_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bounty_id = Column(
        Integer, ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(
        String(20), nullable=False, default=ParticipationStatus.REGISTERED.value, index=True
    )
    points_earned = Column(Integer, nullable=False, default=0)
    berries_earned = Column(Integer, nullable=False, default=0)

    # created_at doubles as the registration timestamp for completion-time badges
    created_at = Column(UTCDateTime, nullable=False)
    completed_at = Column(UTCDateTime)
    modified_at = Column(UTCDateTime)

    user = relationship("User", back_populates="participations")
    bounty = relationship("Bounty", back_populates="participations")
