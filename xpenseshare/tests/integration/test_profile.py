"""
tests/integration/test_profile.py — Identity tokens, profile sync and tiers.

Endpoints covered:
  POST /profile/sync        → 200
  GET  /profile             → 200
  POST /profile/upgrade     → 200
  POST /profile/downgrade   → 200

Token failures (all 401): TOKEN_MISSING, TOKEN_INVALID, TOKEN_EXPIRED.
"""

from __future__ import annotations

import jwt

from .conftest import auth_headers, make_token, sign_in


# ═══════════════════════════════════════════════════════════════════════════
# Authentication
# ═══════════════════════════════════════════════════════════════════════════

class TestIdentityToken:

    def test_missing_header(self, client):
        resp = client.get("/api/v1/profile")
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_MISSING"

    def test_not_a_bearer_header(self, client):
        resp = client.get("/api/v1/profile", headers={"Authorization": "Token abc"})
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_wrong_signature(self, client):
        token = make_token("user-alice", secret="someone-elses-secret")
        resp = client.get("/api/v1/profile", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_expired(self, client):
        token = make_token("user-alice", expires_in=-60)
        resp = client.get("/api/v1/profile", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_EXPIRED"

    def test_missing_sub(self, client):
        token = jwt.encode({"exp": 4102444800}, "test-identity-secret", algorithm="HS256")
        resp = client.get("/api/v1/profile", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_INVALID"


# ═══════════════════════════════════════════════════════════════════════════
# Sync
# ═══════════════════════════════════════════════════════════════════════════

class TestProfileSync:

    def test_first_sync_creates_free_profile(self, client):
        profile = sign_in(client, "alice")

        assert profile["id"] == "user-alice"
        assert profile["email"] == "alice@test.com"
        assert profile["full_name"] == "Alice"
        assert profile["subscription_tier"] == "free"
        assert profile["max_groups"] == 10
        assert profile["max_members_per_group"] == 15

    def test_resync_refreshes_details_and_keeps_tier(self, client):
        alice = sign_in(client, "alice")
        client.post("/api/v1/profile/upgrade", headers=auth_headers(alice["token"]))

        token = make_token("user-alice", email="alice@new.example", name="Alice Liddell")
        resp = client.post("/api/v1/profile/sync", headers=auth_headers(token))

        assert resp.status_code == 200
        profile = resp.get_json()["data"]
        assert profile["email"] == "alice@new.example"
        assert profile["full_name"] == "Alice Liddell"
        assert profile["subscription_tier"] == "premium"

    def test_resync_without_name_keeps_stored_name(self, client):
        sign_in(client, "alice")

        token = make_token("user-alice", email="alice@test.com")
        profile = client.post(
            "/api/v1/profile/sync", headers=auth_headers(token)
        ).get_json()["data"]

        assert profile["full_name"] == "Alice"

    def test_get_before_sync(self, client):
        token = make_token("user-ghost")
        resp = client.get("/api/v1/profile", headers=auth_headers(token))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "PROFILE_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# Tiers
# ═══════════════════════════════════════════════════════════════════════════

class TestTiers:

    def test_upgrade_then_downgrade(self, client):
        alice = sign_in(client, "alice")

        up = client.post("/api/v1/profile/upgrade", headers=auth_headers(alice["token"]))
        assert up.status_code == 200
        assert up.get_json()["data"]["subscription_tier"] == "premium"
        assert up.get_json()["data"]["max_groups"] == 50
        assert up.get_json()["data"]["max_members_per_group"] == 99

        down = client.post("/api/v1/profile/downgrade", headers=auth_headers(alice["token"]))
        assert down.status_code == 200
        assert down.get_json()["data"]["subscription_tier"] == "free"
        assert down.get_json()["data"]["max_groups"] == 10

        current = client.get("/api/v1/profile", headers=auth_headers(alice["token"]))
        assert current.get_json()["data"]["subscription_tier"] == "free"


def test_unknown_route_is_json(client):
    resp = client.get("/api/v1/nowhere")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "NOT_FOUND"
