"""Tests for the ledger consistency audit."""
from __future__ import annotations

import uuid

from bountyboard.db.models import RewardClaim
from bountyboard.services.integrity import LedgerAuditor, audit_ledger
from bountyboard.services.ledger import LedgerService
from tests.conftest import NOW


def test_clean_ledger_passes(db_session, student, make_bounty, make_reward):
    ledger = LedgerService(db_session)
    bounty = make_bounty(alloted_points=100, alloted_berries=40)
    reward = make_reward(berries_required=30)
    ledger.register(student.id, bounty.id)
    ledger.complete(student.id, bounty.id, 100, 40)
    ledger.claim(student.id, reward.id)

    report = audit_ledger(db_session)

    assert report.ok
    assert (report.users, report.participations, report.claims) == (1, 1, 1)
    assert report.as_dict()["violations"] == []


def test_negative_balance_is_reported(db_session, student, make_reward):
    reward = make_reward(berries_required=10)
    db_session.add(
        RewardClaim(
            user_id=student.id,
            reward_id=reward.id,
            berries_spent=10,
            redeemable_code="FORGED01",
            created_at=NOW,
        )
    )
    db_session.commit()

    report = LedgerAuditor(db_session).run()

    assert not report.ok
    [violation] = report.violations
    assert violation.check == "negative_net_berries"
    assert violation.rows == [
        {"user_id": str(student.id), "name": student.name, "net_berries": -10}
    ]


def test_completion_without_timestamp_is_reported(db_session, student, make_bounty, add_completion):
    participation = add_completion(student, make_bounty(), points=10, completed_at=None)

    violation = LedgerAuditor(db_session).check_completed_without_timestamp()

    assert violation is not None
    assert violation.rows == [
        {"participation_id": str(participation.id), "user_id": str(student.id)}
    ]


def test_report_is_json_ready(db_session, student, make_bounty, add_completion):
    add_completion(student, make_bounty(), points=10, completed_at=None)

    payload = audit_ledger(db_session).as_dict()

    assert payload["ok"] is False
    assert [v["check"] for v in payload["violations"]] == ["completed_without_timestamp"]
    assert isinstance(uuid.UUID(payload["violations"][0]["rows"][0]["user_id"]), uuid.UUID)
