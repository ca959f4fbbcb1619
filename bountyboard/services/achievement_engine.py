"""Pure achievement calculation over a user's ledger history."""
from __future__ import annotations

import math
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Literal, Optional

from loguru import logger
from sqlalchemy.orm import Session

from bountyboard.config import settings
from bountyboard.core.achievement_catalog import AchievementCatalog, get_catalog
from bountyboard.services.aggregates import (
    ActivityTotals,
    CompletionRecord,
    LedgerHistory,
    UserTotals,
    load_ledger_history,
)

AchievementType = Literal["points_based", "activity_based", "special_badge"]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class EarnedAchievement:
    id: str
    name: str
    description: str
    badge: str
    type: AchievementType
    threshold: Optional[float] = None
    points: Optional[int] = None
    percentage: Optional[int] = None
    activity_type: Optional[str] = None
    streak: Optional[int] = None
    completion_hours: Optional[float] = None


@dataclass(frozen=True)
class NextMilestone:
    name: str
    threshold: int
    remaining: int
    progress: int


@dataclass(frozen=True)
class FastestCompletion:
    title: str
    type: str
    hours: float
    points: int


@dataclass(frozen=True)
class ActivityBreakdown:
    type: str
    count: int
    points: int
    berries: int


@dataclass(frozen=True)
class AchievementStatistics:
    total_points: int
    total_berries: int
    bounty_count: int
    completed_count: int
    achievement_count: int
    next_milestone: Optional[NextMilestone]
    current_streak: int
    fastest_completion: Optional[FastestCompletion]
    activity_breakdown: tuple[ActivityBreakdown, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AchievementSnapshot:
    """Earned achievements in three categories plus a statistics block."""

    points_based: tuple[EarnedAchievement, ...]
    activity_based: tuple[EarnedAchievement, ...]
    special_badges: tuple[EarnedAchievement, ...]
    statistics: AchievementStatistics

    def all_earned(self) -> tuple[EarnedAchievement, ...]:
        return self.points_based + self.activity_based + self.special_badges

    def earned_ids(self) -> set[str]:
        return {achievement.id for achievement in self.all_earned()}

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible form; equal snapshots give equal dicts."""

        payload = asdict(self)
        for key in ("points_based", "activity_based", "special_badges"):
            payload[key] = list(payload[key])
        payload["statistics"]["activity_breakdown"] = list(
            payload["statistics"]["activity_breakdown"]
        )
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AchievementSnapshot":
        stats = dict(payload["statistics"])
        milestone = stats.get("next_milestone")
        fastest = stats.get("fastest_completion")
        stats["next_milestone"] = NextMilestone(**milestone) if milestone else None
        stats["fastest_completion"] = FastestCompletion(**fastest) if fastest else None
        stats["activity_breakdown"] = tuple(
            ActivityBreakdown(**item) for item in stats.get("activity_breakdown", [])
        )
        return cls(
            points_based=tuple(EarnedAchievement(**a) for a in payload["points_based"]),
            activity_based=tuple(EarnedAchievement(**a) for a in payload["activity_based"]),
            special_badges=tuple(EarnedAchievement(**a) for a in payload["special_badges"]),
            statistics=AchievementStatistics(**stats),
        )


class AchievementCalculationEngine:
    """Derive achievements from a :class:`LedgerHistory`.

    ``calculate`` does no I/O and uses no randomness, so the same history always
    yields an equal snapshot.
    """

    def __init__(self, catalog: AchievementCatalog | None = None) -> None:
        self.catalog = catalog or get_catalog()

    def calculate(self, history: LedgerHistory) -> AchievementSnapshot:
        totals = history.totals
        streak = self.compute_streak(c.completed_at for c in history.completions)
        fastest = self.find_fastest(history.completions)

        points_based = self.calculate_points_achievements(totals)
        activity_based = self.calculate_activity_achievements(totals, history.activity_breakdown)
        special_badges = self.calculate_special_badges(
            totals, history.completions, streak, fastest
        )
        earned = len(points_based) + len(activity_based) + len(special_badges)
        statistics = self.calculate_statistics(
            totals, history.activity_breakdown, streak, fastest, achievement_count=earned
        )
        return AchievementSnapshot(
            points_based=points_based,
            activity_based=activity_based,
            special_badges=special_badges,
            statistics=statistics,
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def calculate_points_achievements(self, totals: UserTotals) -> tuple[EarnedAchievement, ...]:
        return tuple(
            EarnedAchievement(
                id=tier.key,
                name=tier.name,
                description=tier.description,
                badge=tier.badge,
                type="points_based",
                threshold=tier.threshold,
                points=totals.total_points,
            )
            for tier in self.catalog.points_tiers
            if totals.total_points >= tier.threshold
        )

    def calculate_activity_achievements(
        self, totals: UserTotals, breakdown: Iterable[ActivityTotals]
    ) -> tuple[EarnedAchievement, ...]:
        total_points = totals.total_points
        if total_points <= 0 or total_points < self.catalog.min_specialization_points:
            return ()

        by_type = {item.activity_type: item for item in breakdown}
        earned: list[EarnedAchievement] = []
        for spec in self.catalog.activity_specializations:
            activity = by_type.get(spec.activity_type)
            if activity is None or total_points < spec.min_total_points:
                continue
            percentage = round_half_up(activity.total_points / total_points * 100)
            if percentage >= spec.threshold:
                earned.append(
                    EarnedAchievement(
                        id=spec.key,
                        name=spec.name,
                        description=spec.description,
                        badge=spec.badge,
                        type="activity_based",
                        threshold=spec.threshold,
                        points=activity.total_points,
                        percentage=percentage,
                        activity_type=spec.activity_type,
                    )
                )
        return tuple(earned)

    def calculate_special_badges(
        self,
        totals: UserTotals,
        completions: Iterable[CompletionRecord],
        streak: int,
        fastest: Optional[FastestCompletion],
    ) -> tuple[EarnedAchievement, ...]:
        completions = tuple(completions)
        badges: list[EarnedAchievement] = []
        for badge in self.catalog.special_badges:
            extra: dict[str, Any] = {}
            if badge.criteria == "first_bounty_completion":
                met = totals.completed_count > 0
            elif badge.criteria == "perfect_score":
                met = any(c.points_earned == c.bounty_points for c in completions)
            elif badge.criteria == "consecutive_completions":
                met = badge.threshold is not None and streak >= badge.threshold
                extra["streak"] = streak
            elif badge.criteria == "fast_completion":
                met = (
                    fastest is not None
                    and badge.threshold is not None
                    and fastest.hours <= badge.threshold
                )
                if fastest is not None:
                    extra["completion_hours"] = fastest.hours
            else:
                met = False
            if met:
                badges.append(
                    EarnedAchievement(
                        id=badge.key,
                        name=badge.name,
                        description=badge.description,
                        badge=badge.badge,
                        type="special_badge",
                        threshold=badge.threshold,
                        **extra,
                    )
                )
        return tuple(badges)

    def calculate_statistics(
        self,
        totals: UserTotals,
        breakdown: Iterable[ActivityTotals],
        streak: int,
        fastest: Optional[FastestCompletion],
        *,
        achievement_count: int = 0,
    ) -> AchievementStatistics:
        return AchievementStatistics(
            total_points=totals.total_points,
            total_berries=totals.total_berries,
            bounty_count=totals.total_participations,
            completed_count=totals.completed_count,
            achievement_count=achievement_count,
            next_milestone=self.next_milestone(totals.total_points),
            current_streak=streak,
            fastest_completion=fastest,
            activity_breakdown=tuple(
                ActivityBreakdown(
                    type=item.activity_type,
                    count=item.participation_count,
                    points=item.total_points,
                    berries=item.total_berries,
                )
                for item in breakdown
            ),
        )

    def next_milestone(self, total_points: int) -> Optional[NextMilestone]:
        for tier in self.catalog.points_tiers:
            if total_points < tier.threshold:
                return NextMilestone(
                    name=tier.name,
                    threshold=tier.threshold,
                    remaining=tier.threshold - total_points,
                    progress=round_half_up(total_points / tier.threshold * 100),
                )
        return None

    # ------------------------------------------------------------------
    # Derived measures
    # ------------------------------------------------------------------
    @staticmethod
    def compute_streak(completed_at: Iterable[Optional[datetime]]) -> int:
        """Length of the run of consecutive UTC days ending at the latest completion."""

        days: list[date] = sorted(
            {stamp.astimezone(timezone.utc).date() for stamp in completed_at if stamp is not None},
            reverse=True,
        )
        if not days:
            return 0
        streak = 1
        for previous, current in zip(days, days[1:]):
            if previous - current != timedelta(days=1):
                break
            streak += 1
        return streak

    @staticmethod
    def find_fastest(completions: Iterable[CompletionRecord]) -> Optional[FastestCompletion]:
        best: Optional[tuple[float, CompletionRecord]] = None
        for record in completions:
            if record.completed_at is None or record.registered_at is None:
                continue
            hours = (record.completed_at - record.registered_at).total_seconds() / 3600
            if hours < 0:
                continue
            # ties keep the first record, which is the most recent completion
            if best is None or hours < best[0]:
                best = (hours, record)
        if best is None:
            return None
        hours, record = best
        return FastestCompletion(
            title=record.bounty_title,
            type=record.bounty_type,
            hours=round(hours, 2),
            points=record.points_earned,
        )


def calculate_for_user(
    db: Session,
    user_id: uuid.UUID,
    engine: AchievementCalculationEngine | None = None,
) -> AchievementSnapshot:
    """Load the user's ledger views and run the engine over them."""

    engine = engine or AchievementCalculationEngine()
    started = time.perf_counter()
    snapshot = engine.calculate(load_ledger_history(db, user_id))
    elapsed_ms = (time.perf_counter() - started) * 1000
    if elapsed_ms > settings.ACHIEVEMENT_SLOW_CALCULATION_MS:
        logger.warning(
            "Slow achievement calculation",
            user_id=str(user_id),
            elapsed_ms=round(elapsed_ms, 1),
        )
    return snapshot


__all__ = [
    "AchievementCalculationEngine",
    "AchievementSnapshot",
    "AchievementStatistics",
    "ActivityBreakdown",
    "EarnedAchievement",
    "FastestCompletion",
    "NextMilestone",
    "calculate_for_user",
    "round_half_up",
]
