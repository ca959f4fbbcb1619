"""Tests for bounty registration in the ledger service."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from bountyboard.db.models import BountyParticipation
from bountyboard.services.ledger import LedgerService
from bountyboard.utils.exceptions import ErrorKind, LedgerError, LedgerErrorCode


def participation_count(db, user_id, bounty_id) -> int:
    return db.scalar(
        select(func.count(BountyParticipation.id)).where(
            BountyParticipation.user_id == user_id,
            BountyParticipation.bounty_id == bounty_id,
        )
    )


def test_register_creates_registered_row(db_session, student, make_bounty):
    bounty = make_bounty()
    ledger = LedgerService(db_session)

    result = ledger.register(student.id, bounty.id)

    assert result.participation.status == "registered"
    assert result.participation.points_earned == 0
    assert result.participation.berries_earned == 0
    assert result.participation.created_at.tzinfo is not None
    assert result.registered_bounty_ids == [bounty.id]


def test_register_returns_all_registered_ids_in_order(db_session, student, make_bounty):
    first, second, third = make_bounty(name="A"), make_bounty(name="B"), make_bounty(name="C")
    ledger = LedgerService(db_session)

    ledger.register(student.id, third.id)
    ledger.register(student.id, first.id)
    ledger.cancel(student.id, first.id)
    result = ledger.register(student.id, second.id)

    assert result.registered_bounty_ids == sorted([second.id, third.id])


def test_duplicate_registration_is_a_conflict(db_session, student, make_bounty):
    bounty = make_bounty()
    ledger = LedgerService(db_session)
    ledger.register(student.id, bounty.id)

    with pytest.raises(LedgerError) as excinfo:
        ledger.register(student.id, bounty.id)

    assert excinfo.value.code is LedgerErrorCode.DUPLICATE_PARTICIPATION
    assert excinfo.value.kind is ErrorKind.CONFLICT
    assert participation_count(db_session, student.id, bounty.id) == 1


def test_registration_after_cancel_is_still_a_duplicate(db_session, student, make_bounty):
    bounty = make_bounty()
    ledger = LedgerService(db_session)
    ledger.register(student.id, bounty.id)
    ledger.cancel(student.id, bounty.id)

    with pytest.raises(LedgerError) as excinfo:
        ledger.register(student.id, bounty.id)

    assert excinfo.value.code is LedgerErrorCode.DUPLICATE_PARTICIPATION


def test_inactive_bounty_rejected(db_session, student, make_bounty):
    bounty = make_bounty(is_active=False)

    with pytest.raises(LedgerError) as excinfo:
        LedgerService(db_session).register(student.id, bounty.id)

    assert excinfo.value.code is LedgerErrorCode.BOUNTY_NOT_ACTIVE
    assert participation_count(db_session, student.id, bounty.id) == 0


def test_expired_bounty_rejected(db_session, student, make_bounty):
    bounty = make_bounty(scheduled_date=datetime.now(timezone.utc) - timedelta(hours=1))

    with pytest.raises(LedgerError) as excinfo:
        LedgerService(db_session).register(student.id, bounty.id)

    assert excinfo.value.code is LedgerErrorCode.BOUNTY_EXPIRED


def test_expiry_uses_injected_clock(db_session, student, make_bounty):
    scheduled = datetime(2030, 1, 1, tzinfo=timezone.utc)
    bounty = make_bounty(scheduled_date=scheduled)
    late = LedgerService(db_session, clock=lambda: scheduled + timedelta(seconds=1))

    with pytest.raises(LedgerError) as excinfo:
        late.register(student.id, bounty.id)

    assert excinfo.value.code is LedgerErrorCode.BOUNTY_EXPIRED


def test_full_bounty_rejected(db_session, make_user, make_bounty):
    bounty = make_bounty(capacity=1)
    ledger = LedgerService(db_session)
    ledger.register(make_user().id, bounty.id)

    with pytest.raises(LedgerError) as excinfo:
        ledger.register(make_user().id, bounty.id)

    assert excinfo.value.code is LedgerErrorCode.BOUNTY_FULL


def test_cancelled_registration_frees_capacity(db_session, make_user, make_bounty):
    bounty = make_bounty(capacity=1)
    first, second = make_user(), make_user()
    ledger = LedgerService(db_session)
    ledger.register(first.id, bounty.id)
    ledger.cancel(first.id, bounty.id)

    result = ledger.register(second.id, bounty.id)

    assert result.participation.user_id == second.id


def test_unknown_user_and_bounty(db_session, student, make_bounty):
    bounty = make_bounty()
    ledger = LedgerService(db_session)

    with pytest.raises(LedgerError) as missing_user:
        ledger.register(uuid.uuid4(), bounty.id)
    with pytest.raises(LedgerError) as missing_bounty:
        ledger.register(student.id, 999_999)

    assert missing_user.value.code is LedgerErrorCode.USER_NOT_FOUND
    assert missing_bounty.value.code is LedgerErrorCode.BOUNTY_NOT_FOUND
    assert missing_bounty.value.kind is ErrorKind.NOT_FOUND
