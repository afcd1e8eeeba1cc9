"""
schemas/expense_schema.py — Marshmallow schema for expense create / edit.

One schema serves both POST /groups/:id/expenses and PUT /expenses/:id: an
edit replaces the expense and its whole split set, so it carries the same
fields as a create.

Validation responsibility:
  - This file:
      - Field types, lengths, enum values, decimal precision
      - DUPLICATE_PARTICIPANT            (400) — request shape rule
      - MANUAL_AMOUNTS_FOR_EQUAL_POLICY  (400) — request shape rule
      - manual_amounts required when split_policy='manual'
      - Non-empty-after-trim enforcement for description
  - services/split_engine.py:
      - NO_PARTICIPANTS, SPLIT_MISMATCH (422) — Decimal arithmetic
  - services/expense_service.py:
      - PAYER_NOT_MEMBER, SPLIT_USER_NOT_MEMBER (422) — DB membership lookup
      - Edit permission (FORBIDDEN, 403) — DB record lookup

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from xpenseshare.app.errors import ErrorCode
from xpenseshare.app.models.expense import SplitPolicy


# ── Shared validators ──────────────────────────────────────────────────────

def _validate_precision(value: Decimal) -> None:
    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_monetary_amount(value: Decimal) -> None:
    """Strictly positive, at most 2 decimal places. Never rounded."""
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    _validate_precision(value)


def _validate_share_amount(value: Decimal) -> None:
    """A manual share may be zero but never negative."""
    if value < Decimal("0"):
        raise ValidationError("Amounts owed must not be negative.")
    _validate_precision(value)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


# ── Create / replace expense ───────────────────────────────────────────────

class ExpenseSchema(Schema):
    """
    POST /groups/:id/expenses, PUT /expenses/:id

    Split policy behaviour:
      - split_policy='equal'  → server divides amount among participant_ids.
                                manual_amounts must be absent.
      - split_policy='manual' → manual_amounts ({user_id: amount}) required.
                                Participants missing from the map owe 0;
                                map entries for non-participants are ignored.

    participant_ids defaults to every current member of the group (resolved
    in the service). payer_id defaults to the caller.
    """

    description = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=255,
                error="Description must be between 1 and 255 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )

    payer_id = fields.Str(
        load_default=None,
        validate=validate.Length(min=1, max=64),
    )

    split_policy = fields.Enum(
        SplitPolicy,
        load_default=SplitPolicy.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_POLICY},
    )

    # An empty list is passed through; the split engine answers NO_PARTICIPANTS.
    participant_ids = fields.List(
        fields.Str(validate=validate.Length(min=1, max=64)),
        load_default=None,
    )

    manual_amounts = fields.Dict(
        keys=fields.Str(validate=validate.Length(min=1, max=64)),
        values=fields.Decimal(validate=_validate_share_amount),
        load_default=None,
    )

    @validates_schema
    def validate_split_coherence(self, data: dict, **kwargs) -> None:
        """
        1. DUPLICATE_PARTICIPANT: the same user id twice in participant_ids.
        2. MANUAL_AMOUNTS_FOR_EQUAL_POLICY: amounts sent with the equal policy.
        3. manual_amounts missing with the manual policy.

        The sum check is NOT done here; it belongs to the split engine so it
        runs identically for create and edit.
        """
        policy = data.get("split_policy", SplitPolicy.EQUAL)
        participant_ids = data.get("participant_ids")
        manual_amounts = data.get("manual_amounts")

        if participant_ids is not None and len(participant_ids) != len(set(participant_ids)):
            raise ValidationError(
                {"participant_ids": [ErrorCode.DUPLICATE_PARTICIPANT]}
            )

        if policy == SplitPolicy.EQUAL:
            if manual_amounts is not None:
                raise ValidationError(
                    {"manual_amounts": [ErrorCode.MANUAL_AMOUNTS_FOR_EQUAL_POLICY]}
                )
        elif manual_amounts is None:
            raise ValidationError(
                {"manual_amounts": ["Missing data for required field."]}
            )
