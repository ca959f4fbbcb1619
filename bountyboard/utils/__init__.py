"""Utility helpers package."""

from bountyboard.utils.cache import AchievementCache, InMemoryAchievementCache, achievement_cache

__all__ = ["AchievementCache", "InMemoryAchievementCache", "achievement_cache"]
