"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing"), which
    points at an in-memory SQLite database unless TEST_DATABASE_URL is set.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted children-first so tests are isolated.
  - Identity tokens are minted here with the testing secret, the way the
    external identity provider would sign them.

Helper functions (not fixtures) are provided for common operations:
  - make_token(user_id, ...)       → signed identity JWT
  - auth_headers(token)            → {"Authorization": "Bearer <token>"}
  - sign_in(client, name)          → synced profile dict + "token"
  - make_group(client, token, ...) → group dict
  - invite(client, token, gid, email) → HTTP response
  - join_group(client, owner, member, gid) → invites and accepts
  - make_expense(client, token, gid, amount, ...) → HTTP response
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest
from sqlalchemy import text

from xpenseshare.app import create_app
from xpenseshare.app.extensions import db as _db

TEST_IDENTITY_SECRET = "test-identity-secret"

_TABLES_CHILDREN_FIRST = (
    "notifications",
    "expense_splits",
    "expenses",
    "settlements",
    "invitations",
    "group_members",
    "groups",
    "profiles",
)


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode for the whole session."""
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """Deletes all rows after every test, children before parents."""
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            for table in _TABLES_CHILDREN_FIRST:
                conn.execute(text(f"DELETE FROM {table}"))
            conn.commit()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_token(
    user_id: str,
    email: str | None = None,
    name: str | None = None,
    expires_in: int = 3600,
    secret: str = TEST_IDENTITY_SECRET,
) -> str:
    """Signs an identity token the way the identity provider does."""
    claims = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    if email is not None:
        claims["email"] = email
    if name is not None:
        claims["name"] = name
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def sign_in(client, name: str = "alice", email: str | None = None) -> dict:
    """
    Syncs a profile for `name` (user id "user-<name>") and returns the
    profile dict with the bearer token under "token".
    """
    if email is None:
        email = f"{name}@test.com"
    user_id = f"user-{name}"
    token = make_token(user_id, email=email, name=name.title())
    resp = client.post("/api/v1/profile/sync", headers=auth_headers(token))
    assert resp.status_code == 200, f"sign_in failed: {resp.get_json()}"
    profile = resp.get_json()["data"]
    profile["token"] = token
    return profile


def make_group(client, token: str, name: str = "Test Group") -> dict:
    """Creates a group; the token owner becomes its creator and first member."""
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def invite(client, token: str, group_id: str, email: str):
    """Adds a member by email (creator token required). Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/members",
        json={"email": email},
        headers=auth_headers(token),
    )


def respond(client, token: str, invitation_id: str, status: str = "accepted"):
    return client.post(
        f"/api/v1/invitations/{invitation_id}/respond",
        json={"status": status},
        headers=auth_headers(token),
    )


def join_group(client, owner: dict, member: dict, group_id: str) -> None:
    """Creator invites a registered member, who accepts."""
    resp = invite(client, owner["token"], group_id, member["email"])
    assert resp.status_code == 201, f"invite failed: {resp.get_json()}"
    invitation_id = resp.get_json()["data"]["invitation_id"]
    resp = respond(client, member["token"], invitation_id, "accepted")
    assert resp.status_code == 200, f"accept failed: {resp.get_json()}"


def make_expense(
    client,
    token: str,
    group_id: str,
    amount: str,
    description: str = "Test Expense",
    **fields,
):
    """
    Creates an expense and returns the HTTP response.

    Extra keyword arguments (payer_id, split_policy, participant_ids,
    manual_amounts) are sent as-is.
    """
    payload = {"description": description, "amount": amount, **fields}
    return client.post(
        f"/api/v1/groups/{group_id}/expenses",
        json=payload,
        headers=auth_headers(token),
    )


def settle(client, token: str, group_id: str, receiver_id: str, amount: str):
    """Proposes a settlement from the token owner. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/settlements",
        json={"receiver_id": receiver_id, "amount": amount},
        headers=auth_headers(token),
    )


def resolve(client, token: str, settlement_id: str, status: str):
    return client.post(
        f"/api/v1/settlements/{settlement_id}/resolve",
        json={"status": status},
        headers=auth_headers(token),
    )


def group_balance(client, token: str, group_id: str) -> dict:
    """GET /groups/:id/balance for the token owner → {"owed", "owes"} as Decimal."""
    resp = client.get(
        f"/api/v1/groups/{group_id}/balance",
        headers=auth_headers(token),
    )
    assert resp.status_code == 200, f"balance failed: {resp.get_json()}"
    data = resp.get_json()["data"]
    return {"owed": Decimal(data["owed"]), "owes": Decimal(data["owes"])}
