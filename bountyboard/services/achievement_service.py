"""Achievement service: cache-fronted access to the calculation engine."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from bountyboard.db.models.user import User
from bountyboard.services import aggregates
from bountyboard.services.achievement_engine import (
    AchievementCalculationEngine,
    AchievementSnapshot,
    EarnedAchievement,
    NextMilestone,
    calculate_for_user,
)
from bountyboard.services.aggregates import LeaderboardRow
from bountyboard.utils.cache import AchievementCache, CacheStats
from bountyboard.utils.exceptions import LedgerError, LedgerErrorCode

MAX_LEADERBOARD_LIMIT = 100
RECENT_ACHIEVEMENTS = 5


@dataclass
class AchievementProgress:
    """Summary of what a user has earned and what comes next."""

    earned_achievements: int
    next_milestone: Optional[NextMilestone]
    recent_achievements: list[EarnedAchievement] = field(default_factory=list)


@dataclass
class SystemAchievementStats:
    cache: CacheStats
    users_with_completions: int
    cache_hit_rate: int


class AchievementService:
    """Serve achievement snapshots, leaderboards and cache administration."""

    def __init__(
        self,
        db: Session,
        cache: AchievementCache,
        engine: AchievementCalculationEngine | None = None,
    ) -> None:
        self.db = db
        self.cache = cache
        self.engine = engine or AchievementCalculationEngine()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def get_user_achievements(self, user_id: uuid.UUID) -> AchievementSnapshot:
        """Return the cached snapshot or compute and cache a fresh one."""

        cached = self.cache.get(user_id)
        if cached is not None:
            return cached
        self._ensure_user(user_id)
        generation = self.cache.generation(user_id)
        snapshot = calculate_for_user(self.db, user_id, self.engine)
        self.cache.set(user_id, snapshot, generation=generation)
        return snapshot

    def snapshot_before_change(self, user_id: uuid.UUID) -> AchievementSnapshot:
        """Snapshot to diff against after a ledger write.

        Served from the cache when possible. Otherwise computed but not cached,
        since the write about to happen would invalidate it. Unknown users get
        an empty snapshot so the ledger reports its own error.
        """

        cached = self.cache.get(user_id)
        if cached is not None:
            return cached
        return calculate_for_user(self.db, user_id, self.engine)

    def get_achievement_progress(self, user_id: uuid.UUID) -> AchievementProgress:
        snapshot = self.get_user_achievements(user_id)
        return AchievementProgress(
            earned_achievements=snapshot.statistics.achievement_count,
            next_milestone=snapshot.statistics.next_milestone,
            recent_achievements=list(snapshot.all_earned()[:RECENT_ACHIEVEMENTS]),
        )

    def check_for_new_achievements(
        self,
        user_id: uuid.UUID,
        previous: AchievementSnapshot | None = None,
    ) -> list[EarnedAchievement]:
        """Recompute and return achievements missing from the previous snapshot.

        ``previous`` defaults to whatever is cached. With nothing to compare
        against, every earned achievement counts as new.
        """

        if previous is None:
            previous = self.cache.get(user_id)
        self._ensure_user(user_id)
        generation = self.cache.generation(user_id)
        fresh = calculate_for_user(self.db, user_id, self.engine)
        self.cache.set(user_id, fresh, generation=generation)

        known = previous.earned_ids() if previous is not None else set()
        newly_earned = [a for a in fresh.all_earned() if a.id not in known]
        if newly_earned:
            logger.info(
                "New achievements earned",
                user_id=str(user_id),
                achievements=[a.id for a in newly_earned],
            )
        return newly_earned

    # ------------------------------------------------------------------
    # Leaderboard
    # ------------------------------------------------------------------
    def get_leaderboard(self, limit: int = 10) -> list[LeaderboardRow]:
        if limit < 1 or limit > MAX_LEADERBOARD_LIMIT:
            raise LedgerError(LedgerErrorCode.INVALID_LIMIT, {"limit": limit})
        return aggregates.get_leaderboard(self.db, limit)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def system_stats(self) -> SystemAchievementStats:
        stats = self.cache.stats()
        lookups = stats.hits + stats.misses
        hit_rate = round(stats.hits / lookups * 100) if lookups else 0
        return SystemAchievementStats(
            cache=stats,
            users_with_completions=len(aggregates.list_users_with_completions(self.db)),
            cache_hit_rate=hit_rate,
        )

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Achievement cache cleared")

    def invalidate_user(self, user_id: uuid.UUID) -> None:
        self.cache.invalidate(user_id)
        logger.info("Achievement cache entry invalidated", user_id=str(user_id))

    def _ensure_user(self, user_id: uuid.UUID) -> None:
        if self.db.get(User, user_id) is None:
            raise LedgerError(LedgerErrorCode.USER_NOT_FOUND, {"id": str(user_id)})


__all__ = ["AchievementProgress", "AchievementService", "SystemAchievementStats"]
