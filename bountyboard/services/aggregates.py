"""Read-only aggregation queries over participations and claims.

Every balance in the system is derived here from the ledger rows; nothing in
this module writes.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import Session

from bountyboard.db.models.bounty import Bounty, BountyParticipation, ParticipationStatus
from bountyboard.db.models.reward import RewardClaim
from bountyboard.db.models.user import User

_COMPLETED = ParticipationStatus.COMPLETED.value


@dataclass(frozen=True)
class UserEarnings:
    """Point and berry totals for one user."""

    total_points: int
    total_berries_earned: int
    total_berries_spent: int

    @property
    def net_berries(self) -> int:
        return self.total_berries_earned - self.total_berries_spent


@dataclass(frozen=True)
class UserTotals:
    total_participations: int
    completed_count: int
    total_points: int
    total_berries: int


@dataclass(frozen=True)
class ActivityTotals:
    activity_type: str
    participation_count: int
    total_points: int
    total_berries: int


@dataclass(frozen=True)
class CompletionRecord:
    """A completed participation with the bounty fields achievements look at."""

    bounty_id: int
    bounty_title: str
    bounty_type: str
    bounty_points: int
    points_earned: int
    berries_earned: int
    registered_at: datetime
    completed_at: datetime | None


@dataclass(frozen=True)
class LedgerHistory:
    """Everything the achievement engine needs to know about one user."""

    totals: UserTotals
    activity_breakdown: tuple[ActivityTotals, ...]
    completions: tuple[CompletionRecord, ...]


@dataclass(frozen=True)
class LeaderboardRow:
    user_id: uuid.UUID
    name: str
    completed_bounties: int
    total_points: int
    total_berries: int


# ----------------------------------------------------------------------
# Balances
# ----------------------------------------------------------------------
def get_user_earnings(db: Session, user_id: uuid.UUID) -> UserEarnings:
    """Return earned, spent and net totals computed from ledger rows."""

    earned = db.execute(
        select(
            func.coalesce(func.sum(BountyParticipation.points_earned), 0),
            func.coalesce(func.sum(BountyParticipation.berries_earned), 0),
        ).where(
            BountyParticipation.user_id == user_id,
            BountyParticipation.status == _COMPLETED,
        )
    ).one()
    spent = db.scalar(
        select(func.coalesce(func.sum(RewardClaim.berries_spent), 0)).where(
            RewardClaim.user_id == user_id
        )
    )
    return UserEarnings(
        total_points=int(earned[0]),
        total_berries_earned=int(earned[1]),
        total_berries_spent=int(spent or 0),
    )


def get_net_berries(db: Session, user_id: uuid.UUID) -> int:
    return get_user_earnings(db, user_id).net_berries


# ----------------------------------------------------------------------
# Participation helpers
# ----------------------------------------------------------------------
def get_registered_bounty_ids(db: Session, user_id: uuid.UUID) -> list[int]:
    """Return ids of bounties the user is currently registered for (not yet completed)."""

    stmt = (
        select(BountyParticipation.bounty_id)
        .where(
            BountyParticipation.user_id == user_id,
            BountyParticipation.status == ParticipationStatus.REGISTERED.value,
        )
        .order_by(BountyParticipation.bounty_id)
    )
    return list(db.scalars(stmt))


def count_active_participants(db: Session, bounty_id: int) -> int:
    """Count participations that still hold a place on the bounty."""

    return int(
        db.scalar(
            select(func.count(BountyParticipation.id)).where(
                BountyParticipation.bounty_id == bounty_id,
                BountyParticipation.status != ParticipationStatus.CANCELLED.value,
            )
        )
        or 0
    )


def find_participation(
    db: Session, user_id: uuid.UUID, bounty_id: int, *, for_update: bool = False
) -> BountyParticipation | None:
    stmt = select(BountyParticipation).where(
        BountyParticipation.user_id == user_id,
        BountyParticipation.bounty_id == bounty_id,
    )
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()


def list_user_participations(db: Session, user_id: uuid.UUID) -> list[BountyParticipation]:
    stmt = (
        select(BountyParticipation)
        .where(BountyParticipation.user_id == user_id)
        .order_by(BountyParticipation.created_at.desc(), BountyParticipation.bounty_id)
    )
    return list(db.scalars(stmt))


# ----------------------------------------------------------------------
# Claim helpers
# ----------------------------------------------------------------------
def find_claim(
    db: Session, user_id: uuid.UUID, reward_id: int, *, for_update: bool = False
) -> RewardClaim | None:
    stmt = select(RewardClaim).where(
        RewardClaim.user_id == user_id,
        RewardClaim.reward_id == reward_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def redeemable_code_exists(db: Session, code: str) -> bool:
    return db.scalar(select(RewardClaim.id).where(RewardClaim.redeemable_code == code)) is not None


def find_claim_by_code(db: Session, code: str) -> RewardClaim | None:
    return db.execute(
        select(RewardClaim).where(RewardClaim.redeemable_code == code)
    ).scalar_one_or_none()


def list_user_claims(db: Session, user_id: uuid.UUID) -> list[RewardClaim]:
    stmt = (
        select(RewardClaim)
        .where(RewardClaim.user_id == user_id)
        .order_by(RewardClaim.created_at.desc(), RewardClaim.reward_id)
    )
    return list(db.scalars(stmt))


# ----------------------------------------------------------------------
# Achievement views
# ----------------------------------------------------------------------
def get_user_totals(db: Session, user_id: uuid.UUID) -> UserTotals:
    is_completed = BountyParticipation.status == _COMPLETED
    row = db.execute(
        select(
            func.count(BountyParticipation.id),
            func.coalesce(func.sum(case((is_completed, 1), else_=0)), 0),
            func.coalesce(
                func.sum(case((is_completed, BountyParticipation.points_earned), else_=0)), 0
            ),
            func.coalesce(
                func.sum(case((is_completed, BountyParticipation.berries_earned), else_=0)), 0
            ),
        ).where(BountyParticipation.user_id == user_id)
    ).one()
    return UserTotals(
        total_participations=int(row[0]),
        completed_count=int(row[1]),
        total_points=int(row[2]),
        total_berries=int(row[3]),
    )


def get_activity_breakdown(db: Session, user_id: uuid.UUID) -> tuple[ActivityTotals, ...]:
    points = func.coalesce(func.sum(BountyParticipation.points_earned), 0).label("total_points")
    stmt = (
        select(
            Bounty.type,
            func.count(BountyParticipation.id),
            points,
            func.coalesce(func.sum(BountyParticipation.berries_earned), 0),
        )
        .join(Bounty, BountyParticipation.bounty_id == Bounty.id)
        .where(
            BountyParticipation.user_id == user_id,
            BountyParticipation.status == _COMPLETED,
        )
        .group_by(Bounty.type)
        .order_by(points.desc(), Bounty.type)
    )
    return tuple(
        ActivityTotals(
            activity_type=activity_type,
            participation_count=int(count),
            total_points=int(total_points),
            total_berries=int(total_berries),
        )
        for activity_type, count, total_points, total_berries in db.execute(stmt)
    )


def get_completion_records(db: Session, user_id: uuid.UUID) -> tuple[CompletionRecord, ...]:
    stmt = (
        select(BountyParticipation, Bounty)
        .join(Bounty, BountyParticipation.bounty_id == Bounty.id)
        .where(
            BountyParticipation.user_id == user_id,
            BountyParticipation.status == _COMPLETED,
        )
        .order_by(BountyParticipation.completed_at.desc().nulls_last(), Bounty.id)
    )
    return tuple(
        CompletionRecord(
            bounty_id=bounty.id,
            bounty_title=bounty.name,
            bounty_type=bounty.type,
            bounty_points=bounty.alloted_points,
            points_earned=participation.points_earned,
            berries_earned=participation.berries_earned,
            registered_at=participation.created_at,
            completed_at=participation.completed_at,
        )
        for participation, bounty in db.execute(stmt)
    )


def load_ledger_history(db: Session, user_id: uuid.UUID) -> LedgerHistory:
    """Run the three read-only views the achievement engine consumes."""

    return LedgerHistory(
        totals=get_user_totals(db, user_id),
        activity_breakdown=get_activity_breakdown(db, user_id),
        completions=get_completion_records(db, user_id),
    )


def get_leaderboard(db: Session, limit: int = 10) -> list[LeaderboardRow]:
    """Users with at least one completion, by points then berries."""

    points = func.coalesce(func.sum(BountyParticipation.points_earned), 0).label("total_points")
    berries = func.coalesce(func.sum(BountyParticipation.berries_earned), 0).label("total_berries")
    stmt = (
        select(User.id, User.name, func.count(BountyParticipation.id), points, berries)
        .join(
            BountyParticipation,
            and_(
                BountyParticipation.user_id == User.id,
                BountyParticipation.status == _COMPLETED,
            ),
        )
        .group_by(User.id, User.name)
        .order_by(points.desc(), berries.desc(), User.name, User.id)
        .limit(limit)
    )
    return [
        LeaderboardRow(
            user_id=user_id,
            name=name,
            completed_bounties=int(completed),
            total_points=int(total_points),
            total_berries=int(total_berries),
        )
        for user_id, name, completed, total_points, total_berries in db.execute(stmt)
    ]


def list_users_with_completions(db: Session) -> list[uuid.UUID]:
    stmt = (
        select(BountyParticipation.user_id)
        .where(BountyParticipation.status == _COMPLETED)
        .distinct()
    )
    return list(db.scalars(stmt))


__all__ = [
    "ActivityTotals",
    "CompletionRecord",
    "LeaderboardRow",
    "LedgerHistory",
    "UserEarnings",
    "UserTotals",
    "count_active_participants",
    "find_claim",
    "find_claim_by_code",
    "find_participation",
    "get_activity_breakdown",
    "get_completion_records",
    "get_leaderboard",
    "get_net_berries",
    "get_registered_bounty_ids",
    "get_user_earnings",
    "get_user_totals",
    "list_user_claims",
    "list_user_participations",
    "list_users_with_completions",
    "load_ledger_history",
    "redeemable_code_exists",
]
