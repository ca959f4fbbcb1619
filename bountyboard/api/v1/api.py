"""API router for version 1."""
from fastapi import APIRouter

from bountyboard.api.v1.endpoints import achievements, bounties, claims, participations


api_router = APIRouter()
api_router.include_router(bounties.router)
api_router.include_router(participations.router)
api_router.include_router(claims.rewards_router)
api_router.include_router(claims.router)
api_router.include_router(achievements.router)
