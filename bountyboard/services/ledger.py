"""Ledger transaction core: the only code that mutates participations and claims.

Every public mutation runs as a single transaction. Check-then-act sequences
(duplicate checks, balance checks, expiry checks) happen while the rows that
guard them are locked with ``SELECT ... FOR UPDATE``. Locks are always taken
user row first, then the bounty or reward row.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from loguru import logger
from sqlalchemy.orm import Session

from bountyboard.config import settings
from bountyboard.core.participation_state import ensure_transition
from bountyboard.core.redeemable_codes import RedeemableCodeGenerator
from bountyboard.db.models.bounty import Bounty, BountyParticipation, ParticipationStatus
from bountyboard.db.models.reward import Reward, RewardClaim
from bountyboard.db.models.user import User
from bountyboard.db.transaction import find_and_lock_row, ledger_transaction
from bountyboard.services import aggregates
from bountyboard.services.aggregates import UserEarnings
from bountyboard.utils.cache import AchievementCache
from bountyboard.utils.exceptions import LedgerError, LedgerErrorCode

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RegistrationResult:
    participation: BountyParticipation
    registered_bounty_ids: list[int]


@dataclass
class ClaimResult:
    claim: RewardClaim
    reward_name: str
    berries_spent: int
    net_berries: int


class LedgerService:
    """Atomic economic operations over the participation and claim ledger."""

    def __init__(
        self,
        db: Session,
        *,
        cache: AchievementCache | None = None,
        clock: Clock = utc_now,
        code_generator: RedeemableCodeGenerator | None = None,
        lock_timeout_ms: int | None = None,
    ) -> None:
        self.db = db
        self.cache = cache
        self.clock = clock
        self.code_generator = code_generator or RedeemableCodeGenerator(
            max_attempts=settings.REDEEMABLE_CODE_MAX_ATTEMPTS
        )
        self.lock_timeout_ms = lock_timeout_ms

    # ------------------------------------------------------------------
    # Participations
    # ------------------------------------------------------------------
    def register(self, user_id: uuid.UUID, bounty_id: int) -> RegistrationResult:
        """Register ``user_id`` for ``bounty_id``."""

        with ledger_transaction(
            self.db,
            on_conflict=LedgerErrorCode.DUPLICATE_PARTICIPATION,
            lock_timeout_ms=self.lock_timeout_ms,
        ):
            find_and_lock_row(self.db, User, user_id, LedgerErrorCode.USER_NOT_FOUND)
            bounty = find_and_lock_row(self.db, Bounty, bounty_id, LedgerErrorCode.BOUNTY_NOT_FOUND)

            now = self.clock()
            if not bounty.is_active:
                raise LedgerError(LedgerErrorCode.BOUNTY_NOT_ACTIVE, {"bounty_id": bounty_id})
            if bounty.scheduled_date is not None and bounty.scheduled_date < now:
                raise LedgerError(LedgerErrorCode.BOUNTY_EXPIRED, {"bounty_id": bounty_id})

            existing = aggregates.find_participation(self.db, user_id, bounty_id, for_update=True)
            if existing is not None:
                raise LedgerError(
                    LedgerErrorCode.DUPLICATE_PARTICIPATION,
                    {"bounty_id": bounty_id, "status": existing.status},
                )

            if bounty.capacity is not None:
                taken = aggregates.count_active_participants(self.db, bounty_id)
                if taken >= bounty.capacity:
                    raise LedgerError(
                        LedgerErrorCode.BOUNTY_FULL,
                        {"bounty_id": bounty_id, "capacity": bounty.capacity},
                    )

            participation = BountyParticipation(
                user_id=user_id,
                bounty_id=bounty_id,
                status=ParticipationStatus.REGISTERED.value,
                points_earned=0,
                berries_earned=0,
                created_at=now,
                modified_at=now,
            )
            self.db.add(participation)
            self.db.flush()

            registered = aggregates.get_registered_bounty_ids(self.db, user_id)

        logger.info("Bounty registration recorded", user_id=str(user_id), bounty_id=bounty_id)
        return RegistrationResult(participation=participation, registered_bounty_ids=registered)

    def complete(
        self,
        user_id: uuid.UUID,
        bounty_id: int,
        points_earned: int,
        berries_earned: int,
    ) -> BountyParticipation:
        """Mark a registration as completed and record the payout."""

        if points_earned < 0:
            raise LedgerError(
                LedgerErrorCode.INVALID_POINTS_EARNED, {"points_earned": points_earned}
            )
        if berries_earned < 0:
            raise LedgerError(
                LedgerErrorCode.INVALID_BERRIES_EARNED, {"berries_earned": berries_earned}
            )

        with ledger_transaction(
            self.db,
            on_conflict=LedgerErrorCode.BOUNTY_ALREADY_COMPLETED,
            lock_timeout_ms=self.lock_timeout_ms,
        ):
            participation = self._lock_participation(user_id, bounty_id)
            ensure_transition(participation.status, ParticipationStatus.COMPLETED)

            now = self.clock()
            participation.status = ParticipationStatus.COMPLETED.value
            participation.points_earned = points_earned
            participation.berries_earned = berries_earned
            participation.completed_at = now
            participation.modified_at = now
            self.db.flush()

        logger.info(
            "Bounty completed",
            user_id=str(user_id),
            bounty_id=bounty_id,
            points_earned=points_earned,
            berries_earned=berries_earned,
        )
        if self.cache is not None:
            self.cache.invalidate(user_id)
        return participation

    def cancel(self, user_id: uuid.UUID, bounty_id: int) -> BountyParticipation:
        """Withdraw a registration that has not been completed."""

        with ledger_transaction(
            self.db,
            on_conflict=LedgerErrorCode.INVALID_STATUS_TRANSITION,
            lock_timeout_ms=self.lock_timeout_ms,
        ):
            participation = self._lock_participation(user_id, bounty_id)
            ensure_transition(participation.status, ParticipationStatus.CANCELLED)

            participation.status = ParticipationStatus.CANCELLED.value
            participation.modified_at = self.clock()
            self.db.flush()

        logger.info("Bounty registration cancelled", user_id=str(user_id), bounty_id=bounty_id)
        return participation

    def _lock_participation(self, user_id: uuid.UUID, bounty_id: int) -> BountyParticipation:
        participation = aggregates.find_participation(self.db, user_id, bounty_id, for_update=True)
        if participation is None:
            raise LedgerError(
                LedgerErrorCode.PARTICIPATION_NOT_FOUND,
                {"user_id": str(user_id), "bounty_id": bounty_id},
            )
        return participation

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------
    def claim(self, user_id: uuid.UUID, reward_id: int) -> ClaimResult:
        """Spend berries on a reward, at most once per user and reward."""

        with ledger_transaction(
            self.db,
            on_conflict=LedgerErrorCode.REWARD_ALREADY_CLAIMED,
            lock_timeout_ms=self.lock_timeout_ms,
        ):
            find_and_lock_row(self.db, User, user_id, LedgerErrorCode.USER_NOT_FOUND)
            reward = find_and_lock_row(self.db, Reward, reward_id, LedgerErrorCode.REWARD_NOT_FOUND)

            now = self.clock()
            if reward.expiry_date is not None and reward.expiry_date < now:
                raise LedgerError(LedgerErrorCode.REWARD_EXPIRED, {"reward_id": reward_id})

            if aggregates.find_claim(self.db, user_id, reward_id, for_update=True) is not None:
                raise LedgerError(LedgerErrorCode.REWARD_ALREADY_CLAIMED, {"reward_id": reward_id})

            # Always derived from the ledger under the user lock, never from a cache.
            available = aggregates.get_net_berries(self.db, user_id)
            cost = reward.berries_required
            if available < cost:
                raise LedgerError(
                    LedgerErrorCode.INSUFFICIENT_BERRIES,
                    {"available": available, "required": cost},
                )

            code = self.code_generator.generate(
                lambda candidate: aggregates.redeemable_code_exists(self.db, candidate)
            )
            claim = RewardClaim(
                user_id=user_id,
                reward_id=reward_id,
                berries_spent=cost,
                redeemable_code=code,
                created_at=now,
            )
            self.db.add(claim)
            self.db.flush()
            reward_name = reward.name

        logger.info(
            "Reward claimed",
            user_id=str(user_id),
            reward_id=reward_id,
            berries_spent=cost,
            net_berries=available - cost,
        )
        return ClaimResult(
            claim=claim,
            reward_name=reward_name,
            berries_spent=cost,
            net_berries=available - cost,
        )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------
    def get_earnings(self, user_id: uuid.UUID) -> UserEarnings:
        if self.db.get(User, user_id) is None:
            raise LedgerError(LedgerErrorCode.USER_NOT_FOUND, {"id": str(user_id)})
        return aggregates.get_user_earnings(self.db, user_id)

    def list_participations(self, user_id: uuid.UUID) -> list[BountyParticipation]:
        return aggregates.list_user_participations(self.db, user_id)

    def list_claims(self, user_id: uuid.UUID) -> list[RewardClaim]:
        return aggregates.list_user_claims(self.db, user_id)

    def validate_redeemable_code(self, code: str) -> RewardClaim:
        claim = aggregates.find_claim_by_code(self.db, code)
        if claim is None:
            raise LedgerError(LedgerErrorCode.INVALID_REDEEMABLE_CODE)
        return claim


__all__ = ["ClaimResult", "LedgerService", "RegistrationResult", "utc_now"]
