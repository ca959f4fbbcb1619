"""Tests for reward claim endpoints."""
from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth_headers


def test_claim_spends_berries(
    client: TestClient, student, make_bounty, make_reward, add_completion
) -> None:
    add_completion(student, make_bounty(), points=10, berries=80)
    reward = make_reward(name="Hoodie", berries_required=50)
    headers = auth_headers(student)

    response = client.post(f"/api/v1/rewards/{reward.id}/claim", headers=headers)

    assert response.status_code == 201
    data = response.json()
    assert data["reward_name"] == "Hoodie"
    assert data["berries_spent"] == 50
    assert data["net_berries"] == 30
    assert data["claim"]["redeemable_code"].startswith("RWD")

    claims = client.get("/api/v1/claims/my", headers=headers).json()
    assert [c["reward_id"] for c in claims] == [reward.id]


def test_claim_with_insufficient_berries(client: TestClient, student, make_reward) -> None:
    reward = make_reward(berries_required=10)

    response = client.post(f"/api/v1/rewards/{reward.id}/claim", headers=auth_headers(student))

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_BERRIES"
    assert detail["kind"] == "business_rule"


def test_second_claim_conflicts(
    client: TestClient, student, make_bounty, make_reward, add_completion
) -> None:
    add_completion(student, make_bounty(), points=10, berries=100)
    reward = make_reward(berries_required=10)
    headers = auth_headers(student)
    client.post(f"/api/v1/rewards/{reward.id}/claim", headers=headers)

    response = client.post(f"/api/v1/rewards/{reward.id}/claim", headers=headers)

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "REWARD_ALREADY_CLAIMED"


def test_code_lookup_is_restricted(
    client: TestClient, student, make_user, make_bounty, make_reward, add_completion
) -> None:
    add_completion(student, make_bounty(), points=10, berries=100)
    reward = make_reward(berries_required=10)
    code = client.post(
        f"/api/v1/rewards/{reward.id}/claim", headers=auth_headers(student)
    ).json()["claim"]["redeemable_code"]

    denied = client.get(f"/api/v1/claims/code/{code}", headers=auth_headers(student))
    assert denied.status_code == 403

    creator = make_user(name="Mo", role="creator")
    found = client.get(f"/api/v1/claims/code/{code}", headers=auth_headers(creator))
    assert found.status_code == 200
    assert found.json()["user_id"] == str(student.id)

    missing = client.get("/api/v1/claims/code/NOPE0000", headers=auth_headers(creator))
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "INVALID_REDEEMABLE_CODE"
