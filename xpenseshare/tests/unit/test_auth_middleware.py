"""
Unit tests for identity-token verification, run against a bare Flask app so
no database is involved.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from flask import Flask, g

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.middleware.auth_middleware import (
    _authenticate_request,
    decode_identity_token,
)

_SECRET = "unit-secret"


def _app(**overrides) -> Flask:
    app = Flask(__name__)
    app.config.update(
        IDENTITY_JWT_SECRET=_SECRET,
        IDENTITY_JWT_ALGORITHM="HS256",
        IDENTITY_JWT_AUDIENCE=None,
        IDENTITY_JWT_ISSUER=None,
    )
    app.config.update(overrides)
    return app


def _token(secret=_SECRET, expires_in=600, **claims) -> str:
    payload = {
        "sub": "user-1",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def _decode_error(app, token) -> AppError:
    with app.app_context():
        with pytest.raises(AppError) as exc_info:
            decode_identity_token(token)
    return exc_info.value


class TestDecode:

    def test_valid_token(self):
        with _app().app_context():
            claims = decode_identity_token(_token(email="a@test.com"))
        assert claims["sub"] == "user-1"
        assert claims["email"] == "a@test.com"

    def test_audience_ignored_when_not_configured(self):
        with _app().app_context():
            assert decode_identity_token(_token(aud="anything"))["sub"] == "user-1"

    def test_expired(self):
        error = _decode_error(_app(), _token(expires_in=-60))
        assert error.code == ErrorCode.TOKEN_EXPIRED
        assert error.http_status == 401

    def test_wrong_secret(self):
        assert _decode_error(_app(), _token(secret="other")).code == ErrorCode.TOKEN_INVALID

    def test_garbage(self):
        assert _decode_error(_app(), "not.a.jwt").code == ErrorCode.TOKEN_INVALID

    def test_audience_mismatch(self):
        app = _app(IDENTITY_JWT_AUDIENCE="xpense-share")
        assert _decode_error(app, _token(aud="someone-else")).code == ErrorCode.TOKEN_INVALID
        with app.app_context():
            assert decode_identity_token(_token(aud="xpense-share"))["sub"] == "user-1"

    def test_issuer_required_when_configured(self):
        app = _app(IDENTITY_JWT_ISSUER="https://id.example")
        assert _decode_error(app, _token()).code == ErrorCode.TOKEN_INVALID
        with app.app_context():
            claims = decode_identity_token(_token(iss="https://id.example"))
        assert claims["iss"] == "https://id.example"


class TestAuthenticateRequest:

    def test_sets_user_on_g(self):
        app = _app()
        headers = {"Authorization": f"Bearer {_token(name='Alice')}"}
        with app.test_request_context(headers=headers):
            _authenticate_request()
            assert g.user_id == "user-1"
            assert g.identity["name"] == "Alice"

    def test_missing_header(self):
        with _app().test_request_context():
            with pytest.raises(AppError) as exc_info:
                _authenticate_request()
        assert exc_info.value.code == ErrorCode.TOKEN_MISSING

    @pytest.mark.parametrize("header", ["Basic abc", "Bearer", "Bearer a b"])
    def test_malformed_header(self, header):
        with _app().test_request_context(headers={"Authorization": header}):
            with pytest.raises(AppError) as exc_info:
                _authenticate_request()
        assert exc_info.value.code == ErrorCode.TOKEN_INVALID

    def test_blank_subject(self):
        headers = {"Authorization": f"Bearer {_token(sub='   ')}"}
        with _app().test_request_context(headers=headers):
            with pytest.raises(AppError) as exc_info:
                _authenticate_request()
        assert exc_info.value.code == ErrorCode.TOKEN_INVALID
