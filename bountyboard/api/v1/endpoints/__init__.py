"""API endpoint modules for v1."""

from bountyboard.api.v1.endpoints import achievements, bounties, claims, participations

__all__ = ["achievements", "bounties", "claims", "participations"]
