"""User database model."""
import uuid

from sqlalchemy import Boolean, Column, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from bountyboard.db.base import Base
from bountyboard.db.types import UTCDateTime

USER_ROLES = ("student", "faculty", "creator", "admin")
PRIVILEGED_ROLES = frozenset({"faculty", "creator", "admin"})


class User(Base):
    """A participant in the bounty economy.

    Berry balances are never stored here; they are derived from participations
    and claims every time they are needed.
    """

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, default="student")
    college = Column(String(255))

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())
    is_active = Column(Boolean, default=True)

    participations = relationship("BountyParticipation", back_populates="user")
    claims = relationship("RewardClaim", back_populates="user")

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
