"""
errors.py — AppError base class and error code registry.

Every error returned by the Xpense Share API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD                   = "MISSING_FIELD"
    INVALID_FIELD                   = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION        = "INVALID_AMOUNT_PRECISION"
    INVALID_SPLIT_POLICY            = "INVALID_SPLIT_POLICY"
    INVALID_STATUS                  = "INVALID_STATUS"
    DUPLICATE_PARTICIPANT           = "DUPLICATE_PARTICIPANT"
    MANUAL_AMOUNTS_FOR_EQUAL_POLICY = "MANUAL_AMOUNTS_FOR_EQUAL_POLICY"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    ALREADY_MEMBER             = "ALREADY_MEMBER"
    DUPLICATE_INVITE           = "DUPLICATE_INVITE"
    INVALID_TRANSITION         = "INVALID_TRANSITION"     # settlement / invitation already decided

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    PROFILE_NOT_FOUND          = "PROFILE_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"
    SETTLEMENT_NOT_FOUND       = "SETTLEMENT_NOT_FOUND"
    INVITATION_NOT_FOUND       = "INVITATION_NOT_FOUND"
    NOTIFICATION_NOT_FOUND     = "NOTIFICATION_NOT_FOUND"
    MEMBER_NOT_FOUND           = "MEMBER_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    SPLIT_MISMATCH             = "SPLIT_MISMATCH"         # |sum(splits) - amount| > 0.01
    NO_PARTICIPANTS            = "NO_PARTICIPANTS"
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    SPLIT_USER_NOT_MEMBER      = "SPLIT_USER_NOT_MEMBER"
    RECIPIENT_NOT_MEMBER       = "RECIPIENT_NOT_MEMBER"
    SELF_SETTLEMENT            = "SELF_SETTLEMENT"
    CANNOT_REMOVE_SELF         = "CANNOT_REMOVE_SELF"
    GROUP_LIMIT_EXCEEDED       = "GROUP_LIMIT_EXCEEDED"
    MEMBER_LIMIT_EXCEEDED      = "MEMBER_LIMIT_EXCEEDED"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── Collaborator Errors ────────────────────────────────────────────────
    EMAIL_DELIVERY_FAILED      = "EMAIL_DELIVERY_FAILED"  # 502
    STORE_UNAVAILABLE          = "STORE_UNAVAILABLE"      # 503, retryable by the user

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"
