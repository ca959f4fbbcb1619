"""Database models package."""
from bountyboard.db.models.user import User
from bountyboard.db.models.bounty import Bounty, BountyParticipation, ParticipationStatus
from bountyboard.db.models.reward import Reward, RewardClaim

__all__ = [
    "User",
    "Bounty",
    "BountyParticipation",
    "ParticipationStatus",
    "Reward",
    "RewardClaim",
]
