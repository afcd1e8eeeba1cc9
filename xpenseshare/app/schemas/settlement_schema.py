"""
schemas/settlement_schema.py — Marshmallow schemas for settlement endpoints.

Validation responsibility:
  - This file: field types, decimal precision, positive amount, status values.
  - services/settlement_service.py:
      - SELF_SETTLEMENT (422)       — needs the caller's id from flask.g
      - RECIPIENT_NOT_MEMBER (422)  — DB membership lookup
      - INVALID_TRANSITION (409)    — current status lookup
      - FORBIDDEN (403)             — group creator lookup

The amount is not compared with any outstanding balance.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate

from xpenseshare.app.errors import ErrorCode

RESOLUTION_STATUSES = ("accepted", "rejected")


# Kept local rather than imported from expense_schema so each schema file
# stays self-contained.
def _validate_monetary_amount(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


class CreateSettlementSchema(Schema):
    """
    POST /groups/:id/settlements

    The sender is the authenticated user (flask.g.user_id), never a body field.
    """

    receiver_id = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=64),
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )


class ResolveSettlementSchema(Schema):
    """POST /settlements/:id/resolve — {"status": "accepted" | "rejected"}"""

    status = fields.Str(
        required=True,
        validate=validate.OneOf(RESOLUTION_STATUSES, error=ErrorCode.INVALID_STATUS),
    )
