"""Service layer package."""

from bountyboard.services.achievement_engine import AchievementCalculationEngine
from bountyboard.services.achievement_service import AchievementService
from bountyboard.services.integrity import LedgerAuditor
from bountyboard.services.ledger import LedgerService

__all__ = [
    "AchievementCalculationEngine",
    "AchievementService",
    "LedgerAuditor",
    "LedgerService",
]
