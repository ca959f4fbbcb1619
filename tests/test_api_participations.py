"""Tests for bounty participation endpoints."""
from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
from jose import jwt

from bountyboard.core.security import ALGORITHM, create_access_token
from tests.conftest import auth_headers


def test_register_requires_auth(client: TestClient, make_bounty) -> None:
    bounty = make_bounty()

    response = client.post(f"/api/v1/bounties/{bounty.id}/register")

    assert response.status_code == 401


def test_register_complete_and_read_earnings(client: TestClient, student, make_bounty) -> None:
    bounty = make_bounty(alloted_points=100, alloted_berries=50)
    headers = auth_headers(student)

    response = client.post(f"/api/v1/bounties/{bounty.id}/register", headers=headers)
    assert response.status_code == 201
    data = response.json()
    assert data["participation"]["status"] == "registered"
    assert data["registered_bounty_ids"] == [bounty.id]

    response = client.post(
        f"/api/v1/bounties/{bounty.id}/complete",
        json={"points_earned": 100, "berries_earned": 50},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["participation"]["status"] == "completed"
    assert data["participation"]["completed_at"] is not None
    new_ids = {a["id"] for a in data["new_achievements"]}
    assert {"FIRST_STEPS", "FLAWLESS_VICTORY"} <= new_ids

    earnings = client.get("/api/v1/participations/my/earnings", headers=headers).json()
    assert earnings["total_points"] == 100
    assert earnings["net_berries"] == 50

    listed = client.get("/api/v1/participations/my", headers=headers).json()
    assert [p["bounty_id"] for p in listed] == [bounty.id]


def test_duplicate_registration_conflicts(client: TestClient, student, make_bounty) -> None:
    bounty = make_bounty()
    headers = auth_headers(student)
    client.post(f"/api/v1/bounties/{bounty.id}/register", headers=headers)

    response = client.post(f"/api/v1/bounties/{bounty.id}/register", headers=headers)

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "DUPLICATE_PARTICIPATION"
    assert detail["kind"] == "conflict"


def test_unknown_bounty_is_not_found(client: TestClient, student) -> None:
    response = client.post("/api/v1/bounties/9999/register", headers=auth_headers(student))

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "BOUNTY_NOT_FOUND"


def test_negative_points_rejected(client: TestClient, student, make_bounty) -> None:
    bounty = make_bounty()
    headers = auth_headers(student)
    client.post(f"/api/v1/bounties/{bounty.id}/register", headers=headers)

    response = client.post(
        f"/api/v1/bounties/{bounty.id}/complete",
        json={"points_earned": -5},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_POINTS_EARNED"


def test_completing_for_someone_else_needs_privilege(
    client: TestClient, student, admin, make_user, make_bounty
) -> None:
    bounty = make_bounty()
    client.post(f"/api/v1/bounties/{bounty.id}/register", headers=auth_headers(student))
    payload = {"user_id": str(student.id), "points_earned": 10}

    peer = make_user(name="Peer")
    forbidden = client.post(
        f"/api/v1/bounties/{bounty.id}/complete", json=payload, headers=auth_headers(peer)
    )
    assert forbidden.status_code == 403

    allowed = client.post(
        f"/api/v1/bounties/{bounty.id}/complete", json=payload, headers=auth_headers(admin)
    )
    assert allowed.status_code == 200
    assert allowed.json()["participation"]["user_id"] == str(student.id)


def test_completing_for_unknown_user_reports_missing_participation(
    client: TestClient, admin, make_bounty, cache
) -> None:
    bounty = make_bounty()
    unknown = uuid.uuid4()

    response = client.post(
        f"/api/v1/bounties/{bounty.id}/complete",
        json={"user_id": str(unknown), "points_earned": 10},
        headers=auth_headers(admin),
    )

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "PARTICIPATION_NOT_FOUND"
    assert unknown not in cache


def test_completion_leaves_no_pre_completion_snapshot_cached(
    client: TestClient, student, make_bounty, cache
) -> None:
    bounty = make_bounty(alloted_points=100)
    headers = auth_headers(student)
    client.post(f"/api/v1/bounties/{bounty.id}/register", headers=headers)

    response = client.post(
        f"/api/v1/bounties/{bounty.id}/complete", json={"points_earned": 100}, headers=headers
    )

    assert response.status_code == 200
    assert cache.get(student.id).statistics.total_points == 100


def test_cancel_then_complete_is_rejected(client: TestClient, student, make_bounty) -> None:
    bounty = make_bounty()
    headers = auth_headers(student)
    client.post(f"/api/v1/bounties/{bounty.id}/register", headers=headers)

    cancelled = client.post(f"/api/v1/bounties/{bounty.id}/cancel", headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    response = client.post(
        f"/api/v1/bounties/{bounty.id}/complete", json={"points_earned": 1}, headers=headers
    )
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"


def test_malformed_payload_uses_error_envelope(client: TestClient, student, make_bounty) -> None:
    bounty = make_bounty()

    response = client.post(
        f"/api/v1/bounties/{bounty.id}/complete",
        json={"points_earned": 10, "bonus": 5},
        headers=auth_headers(student),
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "INVALID_REQUEST"
    assert detail["details"]["errors"][0]["loc"] == ["body", "bonus"]


def test_expired_or_foreign_tokens_are_rejected(client: TestClient, student) -> None:
    expired = create_access_token(student.id, expires_minutes=-1)
    forged = jwt.encode(
        {"sub": str(student.id), "type": "refresh", "exp": 4102444800},
        "test-secret-key",
        algorithm=ALGORITHM,
    )

    for token in (expired, forged, "not-a-token"):
        response = client.get(
            "/api/v1/participations/my", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
