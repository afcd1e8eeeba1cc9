"""
middleware/auth_middleware.py — Identity token verification decorator.

Tokens are issued by the external identity provider; this service never
mints them. The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies the JWT signature with IDENTITY_JWT_SECRET / IDENTITY_JWT_ALGORITHM
  3. Checks expiry, and audience / issuer when they are configured
  4. Attaches the opaque user id (the `sub` claim) to flask.g.user_id and the
     full claim set to flask.g.identity
  5. Raises the matching 401 error if any step fails

Responsibility boundary:
  - Authentication only (401). Group membership and creator checks are
    authorization (403) and live in services/guard.py.
  - Services receive user_id as a plain string argument, with no knowledge
    of JWT or HTTP headers.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, invalid signature, or bad payload
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from xpenseshare.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces identity-token authentication.

    Usage:
        @bp.route("/groups/")
        @require_auth
        def list_groups():
            user_id = g.user_id  # always a non-empty str when this runs
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def decode_identity_token(raw_token: str) -> dict:
    """
    Verifies `raw_token` against the app's identity settings and returns
    its claims. Raises AppError (401) on any failure.
    """
    config = current_app.config
    audience = config.get("IDENTITY_JWT_AUDIENCE")
    issuer = config.get("IDENTITY_JWT_ISSUER")

    options = {"require": ["sub", "exp"]}
    if not audience:
        options["verify_aud"] = False

    try:
        return jwt.decode(
            raw_token,
            config["IDENTITY_JWT_SECRET"],
            algorithms=[config.get("IDENTITY_JWT_ALGORITHM", "HS256")],
            audience=audience or None,
            issuer=issuer or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Sign in again to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        # Covers: bad signature, malformed token, wrong audience/issuer,
        # missing required claims.
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        )


def _authenticate_request() -> None:
    """
    Performs the full authentication sequence and sets flask.g.user_id.

    Separated from the decorator wrapper so tests can call it directly.
    """
    auth_header = request.headers.get("Authorization", "")

    # ── Step 1: Require Authorization header ──────────────────────────────
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    # ── Step 2: Parse "Bearer <token>" format ─────────────────────────────
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    # ── Step 3: Verify ─────────────────────────────────────────────────────
    payload = decode_identity_token(parts[1])

    # ── Step 4: The user id is whatever opaque string the provider issued ─
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.strip():
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
            401,
        )

    g.user_id = sub
    g.identity = payload
