"""Tests for completing and cancelling participations."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from bountyboard.services.aggregates import get_user_earnings
from bountyboard.services.achievement_service import AchievementService
from bountyboard.services.ledger import LedgerService
from bountyboard.utils.exceptions import ErrorKind, LedgerError, LedgerErrorCode

FIXED_NOW = datetime(2030, 6, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture()
def registered(db_session, student, make_bounty):
    bounty = make_bounty(alloted_points=200, alloted_berries=80)
    LedgerService(db_session).register(student.id, bounty.id)
    return student, bounty


def test_complete_records_payout(db_session, registered):
    user, bounty = registered
    ledger = LedgerService(db_session, clock=lambda: FIXED_NOW)

    participation = ledger.complete(user.id, bounty.id, 150, 60)

    assert participation.status == "completed"
    assert participation.points_earned == 150
    assert participation.berries_earned == 60
    assert participation.completed_at == FIXED_NOW
    earnings = get_user_earnings(db_session, user.id)
    assert (earnings.total_points, earnings.net_berries) == (150, 60)


def test_complete_twice_rejected(db_session, registered):
    user, bounty = registered
    ledger = LedgerService(db_session)
    ledger.complete(user.id, bounty.id, 100, 10)

    with pytest.raises(LedgerError) as excinfo:
        ledger.complete(user.id, bounty.id, 500, 500)

    assert excinfo.value.code is LedgerErrorCode.BOUNTY_ALREADY_COMPLETED
    assert excinfo.value.kind is ErrorKind.BUSINESS_RULE
    assert get_user_earnings(db_session, user.id).total_points == 100


@pytest.mark.parametrize(
    ("points", "berries", "code"),
    [
        (-1, 0, LedgerErrorCode.INVALID_POINTS_EARNED),
        (0, -5, LedgerErrorCode.INVALID_BERRIES_EARNED),
    ],
)
def test_negative_amounts_rejected(db_session, registered, points, berries, code):
    user, bounty = registered

    with pytest.raises(LedgerError) as excinfo:
        LedgerService(db_session).complete(user.id, bounty.id, points, berries)

    assert excinfo.value.code is code
    assert excinfo.value.kind is ErrorKind.VALIDATION


def test_complete_without_registration(db_session, student, make_bounty):
    bounty = make_bounty()

    with pytest.raises(LedgerError) as excinfo:
        LedgerService(db_session).complete(student.id, bounty.id, 10, 10)

    assert excinfo.value.code is LedgerErrorCode.PARTICIPATION_NOT_FOUND


def test_complete_invalidates_achievement_cache(db_session, registered, cache):
    user, bounty = registered
    AchievementService(db_session, cache).get_user_achievements(user.id)
    assert user.id in cache

    LedgerService(db_session, cache=cache).complete(user.id, bounty.id, 10, 1)

    assert user.id not in cache


def test_cancel_does_not_touch_cache(db_session, registered, cache):
    user, bounty = registered
    AchievementService(db_session, cache).get_user_achievements(user.id)

    participation = LedgerService(db_session, cache=cache).cancel(user.id, bounty.id)

    assert participation.status == "cancelled"
    assert user.id in cache


def test_cancel_completed_rejected(db_session, registered):
    user, bounty = registered
    ledger = LedgerService(db_session)
    ledger.complete(user.id, bounty.id, 10, 10)

    with pytest.raises(LedgerError) as excinfo:
        ledger.cancel(user.id, bounty.id)

    assert excinfo.value.code is LedgerErrorCode.CANNOT_CANCEL_COMPLETED_BOUNTY


def test_cancelled_participation_is_terminal(db_session, registered):
    user, bounty = registered
    ledger = LedgerService(db_session)
    ledger.cancel(user.id, bounty.id)

    with pytest.raises(LedgerError) as complete_error:
        ledger.complete(user.id, bounty.id, 10, 10)
    with pytest.raises(LedgerError) as cancel_error:
        ledger.cancel(user.id, bounty.id)

    assert complete_error.value.code is LedgerErrorCode.INVALID_STATUS_TRANSITION
    assert cancel_error.value.code is LedgerErrorCode.INVALID_STATUS_TRANSITION
    assert get_user_earnings(db_session, user.id).total_points == 0
