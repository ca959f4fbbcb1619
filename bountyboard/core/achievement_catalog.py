"""Static achievement configuration: point tiers, specialisations and special badges.

The catalog is built once at process start (optionally from a JSON file named by
``ACHIEVEMENT_CATALOG_PATH``) and is immutable afterwards.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field

from bountyboard.config import settings

BadgeCriteria = Literal[
    "first_bounty_completion",
    "perfect_score",
    "consecutive_completions",
    "fast_completion",
]


@dataclass(frozen=True)
class PointsTier:
    key: str
    threshold: int
    name: str
    description: str
    badge: str


@dataclass(frozen=True)
class ActivitySpecialization:
    key: str
    activity_type: str
    threshold: int  # percent of total points
    min_total_points: int
    name: str
    description: str
    badge: str


@dataclass(frozen=True)
class SpecialBadge:
    key: str
    criteria: BadgeCriteria
    name: str
    description: str
    badge: str
    threshold: Optional[float] = None


@dataclass(frozen=True)
class AchievementCatalog:
    """Read-only set of achievement definitions."""

    points_tiers: tuple[PointsTier, ...]
    activity_specializations: tuple[ActivitySpecialization, ...]
    special_badges: tuple[SpecialBadge, ...]

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.points_tiers, key=lambda tier: tier.threshold))
        object.__setattr__(self, "points_tiers", ordered)

    def badge(self, criteria: BadgeCriteria) -> Optional[SpecialBadge]:
        for badge in self.special_badges:
            if badge.criteria == criteria:
                return badge
        return None

    @property
    def min_specialization_points(self) -> int:
        """The global gate below which no specialisation is evaluated."""

        if not self.activity_specializations:
            return 0
        return min(item.min_total_points for item in self.activity_specializations)


DEFAULT_CATALOG = AchievementCatalog(
    points_tiers=(
        PointsTier("RISING_STAR", 1000, "Rising Star", "First major milestone", "⭐"),
        PointsTier("SEASONED_EXPLORER", 2000, "Seasoned Explorer", "Proven track record", "\U0001f31f"),
        PointsTier("ELITE_CHAMPION", 3000, "Elite Champion", "Top-tier performance", "\U0001f3c6"),
        PointsTier("LEGENDARY_MASTER", 5000, "Legendary Master", "Ultimate achievement", "\U0001f451"),
    ),
    activity_specializations=(
        ActivitySpecialization(
            "CODECRAFT_MASTER", "coding", 60, 1000,
            "CodeCraft Master", "Dominates coding challenges", "\U0001f4bb",
        ),
        ActivitySpecialization(
            "VISUAL_VIRTUOSO", "design", 60, 1000,
            "Visual Virtuoso", "Master of design activities", "\U0001f3a8",
        ),
        ActivitySpecialization(
            "WORDSMITH_ELITE", "writing", 60, 1000,
            "WordSmith Elite", "Master of writing activities", "✍️",
        ),
        ActivitySpecialization(
            "DISCOVERY_PIONEER", "research", 60, 1000,
            "Discovery Pioneer", "Master of research activities", "\U0001f50d",
        ),
    ),
    special_badges=(
        SpecialBadge(
            "FIRST_STEPS", "first_bounty_completion",
            "First Steps", "Completed first bounty", "\U0001f463",
        ),
        SpecialBadge(
            "FLAWLESS_VICTORY", "perfect_score",
            "Flawless Victory", "Perfect score in any bounty", "\U0001f4af",
        ),
        SpecialBadge(
            "CONSISTENCY_KING", "consecutive_completions",
            "Consistency King", "5+ consecutive days of bounty completions", "\U0001f451",
            threshold=5,
        ),
        SpecialBadge(
            "LIGHTNING_FAST", "fast_completion",
            "Lightning Fast", "Completion in record time", "⚡",
            threshold=24,
        ),
    ),
)


class _PointsTierFile(BaseModel):
    key: str
    threshold: int = Field(ge=0)
    name: str
    description: str = ""
    badge: str = ""


class _SpecializationFile(BaseModel):
    key: str
    activity_type: str
    threshold: int = Field(ge=0, le=100)
    min_total_points: int = Field(ge=0)
    name: str
    description: str = ""
    badge: str = ""


class _SpecialBadgeFile(BaseModel):
    key: str
    criteria: BadgeCriteria
    name: str
    description: str = ""
    badge: str = ""
    threshold: Optional[float] = None


class CatalogFile(BaseModel):
    """JSON layout accepted by :func:`load_catalog`."""

    points_tiers: list[_PointsTierFile]
    activity_specializations: list[_SpecializationFile] = Field(default_factory=list)
    special_badges: list[_SpecialBadgeFile] = Field(default_factory=list)

    def to_catalog(self) -> AchievementCatalog:
        return AchievementCatalog(
            points_tiers=tuple(PointsTier(**t.model_dump()) for t in self.points_tiers),
            activity_specializations=tuple(
                ActivitySpecialization(**s.model_dump()) for s in self.activity_specializations
            ),
            special_badges=tuple(SpecialBadge(**b.model_dump()) for b in self.special_badges),
        )


def load_catalog(path: Path) -> AchievementCatalog:
    """Parse and validate a catalog JSON file."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    catalog = CatalogFile.model_validate(payload).to_catalog()
    logger.info(
        "Loaded achievement catalog",
        path=str(path),
        tiers=len(catalog.points_tiers),
        specializations=len(catalog.activity_specializations),
        badges=len(catalog.special_badges),
    )
    return catalog


@lru_cache()
def get_catalog() -> AchievementCatalog:
    """Return the process-wide catalog."""

    if settings.ACHIEVEMENT_CATALOG_PATH is not None:
        return load_catalog(settings.ACHIEVEMENT_CATALOG_PATH)
    return DEFAULT_CATALOG


__all__ = [
    "AchievementCatalog",
    "ActivitySpecialization",
    "CatalogFile",
    "DEFAULT_CATALOG",
    "PointsTier",
    "SpecialBadge",
    "get_catalog",
    "load_catalog",
]
