"""Consistency audit over the participation and claim ledger."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bountyboard.db.models.bounty import BountyParticipation, ParticipationStatus
from bountyboard.db.models.reward import RewardClaim
from bountyboard.db.models.user import User

_COMPLETED = ParticipationStatus.COMPLETED.value


@dataclass
class IntegrityViolation:
    check: str
    message: str
    rows: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class LedgerAuditReport:
    users: int = 0
    participations: int = 0
    claims: int = 0
    violations: list[IntegrityViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    def as_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "users": self.users,
            "participations": self.participations,
            "claims": self.claims,
            "violations": [
                {"check": v.check, "message": v.message, "rows": v.rows} for v in self.violations
            ],
        }


class LedgerAuditor:
    """Run read-only checks that must hold for every committed ledger state."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def run(self) -> LedgerAuditReport:
        report = LedgerAuditReport(
            users=self._count(User.id),
            participations=self._count(BountyParticipation.id),
            claims=self._count(RewardClaim.id),
        )
        checks = (
            self.check_negative_net_berries,
            self.check_negative_points,
            self.check_duplicate_participations,
            self.check_duplicate_claims,
            self.check_completed_without_timestamp,
            self.check_negative_berries_spent,
        )
        for check in checks:
            violation = check()
            if violation is not None:
                logger.error(
                    "Ledger integrity violation",
                    check=violation.check,
                    message=violation.message,
                    rows=len(violation.rows),
                )
                report.violations.append(violation)

        if report.ok:
            logger.info(
                "Ledger audit passed",
                users=report.users,
                participations=report.participations,
                claims=report.claims,
            )
        return report

    def _count(self, column) -> int:
        return int(self.db.scalar(select(func.count(column))) or 0)

    def _earned_subquery(self):
        return (
            select(
                BountyParticipation.user_id.label("user_id"),
                func.sum(BountyParticipation.berries_earned).label("earned"),
                func.sum(BountyParticipation.points_earned).label("points"),
            )
            .where(BountyParticipation.status == _COMPLETED)
            .group_by(BountyParticipation.user_id)
            .subquery()
        )

    def check_negative_net_berries(self) -> IntegrityViolation | None:
        earned = self._earned_subquery()
        spent = (
            select(
                RewardClaim.user_id.label("user_id"),
                func.sum(RewardClaim.berries_spent).label("spent"),
            )
            .group_by(RewardClaim.user_id)
            .subquery()
        )
        net = func.coalesce(earned.c.earned, 0) - func.coalesce(spent.c.spent, 0)
        stmt = (
            select(User.id, User.name, net.label("net"))
            .outerjoin(earned, earned.c.user_id == User.id)
            .outerjoin(spent, spent.c.user_id == User.id)
            .where(net < 0)
        )
        rows = [
            {"user_id": str(user_id), "name": name, "net_berries": int(balance)}
            for user_id, name, balance in self.db.execute(stmt)
        ]
        if not rows:
            return None
        return IntegrityViolation(
            "negative_net_berries", f"{len(rows)} user(s) have a negative berry balance", rows
        )

    def check_negative_points(self) -> IntegrityViolation | None:
        earned = self._earned_subquery()
        stmt = select(earned.c.user_id, earned.c.points).where(earned.c.points < 0)
        rows = [
            {"user_id": str(user_id), "total_points": int(points)}
            for user_id, points in self.db.execute(stmt)
        ]
        if not rows:
            return None
        return IntegrityViolation(
            "negative_points", f"{len(rows)} user(s) have negative total points", rows
        )

    def check_duplicate_participations(self) -> IntegrityViolation | None:
        stmt = (
            select(BountyParticipation.user_id, BountyParticipation.bounty_id, func.count())
            .group_by(BountyParticipation.user_id, BountyParticipation.bounty_id)
            .having(func.count() > 1)
        )
        rows = [
            {"user_id": str(user_id), "bounty_id": bounty_id, "count": int(count)}
            for user_id, bounty_id, count in self.db.execute(stmt)
        ]
        if not rows:
            return None
        return IntegrityViolation(
            "duplicate_participations", f"{len(rows)} duplicate participation pair(s)", rows
        )

    def check_duplicate_claims(self) -> IntegrityViolation | None:
        stmt = (
            select(RewardClaim.user_id, RewardClaim.reward_id, func.count())
            .group_by(RewardClaim.user_id, RewardClaim.reward_id)
            .having(func.count() > 1)
        )
        rows = [
            {"user_id": str(user_id), "reward_id": reward_id, "count": int(count)}
            for user_id, reward_id, count in self.db.execute(stmt)
        ]
        if not rows:
            return None
        return IntegrityViolation("duplicate_claims", f"{len(rows)} duplicate claim pair(s)", rows)

    def check_completed_without_timestamp(self) -> IntegrityViolation | None:
        stmt = select(BountyParticipation.id, BountyParticipation.user_id).where(
            BountyParticipation.status == _COMPLETED,
            BountyParticipation.completed_at.is_(None),
        )
        rows = [
            {"participation_id": str(pid), "user_id": str(user_id)}
            for pid, user_id in self.db.execute(stmt)
        ]
        if not rows:
            return None
        return IntegrityViolation(
            "completed_without_timestamp",
            f"{len(rows)} completed participation(s) lack completed_at",
            rows,
        )

    def check_negative_berries_spent(self) -> IntegrityViolation | None:
        stmt = select(RewardClaim.id, RewardClaim.user_id, RewardClaim.berries_spent).where(
            RewardClaim.berries_spent < 0
        )
        rows = [
            {"claim_id": str(cid), "user_id": str(user_id), "berries_spent": int(spent)}
            for cid, user_id, spent in self.db.execute(stmt)
        ]
        if not rows:
            return None
        return IntegrityViolation(
            "negative_berries_spent", f"{len(rows)} claim(s) record negative spending", rows
        )


def audit_ledger(db: Session) -> LedgerAuditReport:
    return LedgerAuditor(db).run()


__all__ = [
    "IntegrityViolation",
    "LedgerAuditReport",
    "LedgerAuditor",
    "audit_ledger",
]
