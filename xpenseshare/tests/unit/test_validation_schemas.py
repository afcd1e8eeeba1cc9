"""
Unit tests for the request schemas. Only shape rules live here; anything that
needs the database is covered by the service tests.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from marshmallow import ValidationError

from xpenseshare.app.errors import ErrorCode
from xpenseshare.app.models.expense import SplitPolicy
from xpenseshare.app.schemas.expense_schema import ExpenseSchema
from xpenseshare.app.schemas.group_schema import (
    AddMemberSchema,
    CreateGroupSchema,
    UpdateGroupSchema,
)
from xpenseshare.app.schemas.invitation_schema import RespondInvitationSchema
from xpenseshare.app.schemas.settlement_schema import (
    CreateSettlementSchema,
    ResolveSettlementSchema,
)


def _errors(schema, payload) -> dict:
    with pytest.raises(ValidationError) as exc_info:
        schema.load(payload)
    return exc_info.value.messages


class TestExpenseSchema:

    def test_defaults(self):
        data = ExpenseSchema().load({"description": "Dinner", "amount": "90.00"})
        assert data["amount"] == Decimal("90.00")
        assert data["split_policy"] is SplitPolicy.EQUAL
        assert data["payer_id"] is None
        assert data["participant_ids"] is None
        assert data["manual_amounts"] is None

    def test_manual_policy(self):
        data = ExpenseSchema().load({
            "description": "Taxi",
            "amount": "30",
            "split_policy": "manual",
            "manual_amounts": {"alice": "10", "bob": "0"},
        })
        assert data["split_policy"] is SplitPolicy.MANUAL
        assert data["manual_amounts"] == {"alice": Decimal("10"), "bob": Decimal("0")}

    def test_three_decimal_places(self):
        errors = _errors(ExpenseSchema(), {"description": "x", "amount": "10.123"})
        assert errors["amount"] == [ErrorCode.INVALID_AMOUNT_PRECISION]

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_amount_must_be_positive(self, amount):
        errors = _errors(ExpenseSchema(), {"description": "x", "amount": amount})
        assert "amount" in errors

    def test_blank_description(self):
        errors = _errors(ExpenseSchema(), {"description": "   ", "amount": "1"})
        assert "description" in errors

    def test_missing_fields(self):
        errors = _errors(ExpenseSchema(), {})
        assert set(errors) == {"description", "amount"}

    def test_unknown_policy(self):
        errors = _errors(
            ExpenseSchema(),
            {"description": "x", "amount": "1", "split_policy": "percent"},
        )
        assert errors["split_policy"] == [ErrorCode.INVALID_SPLIT_POLICY]

    def test_duplicate_participant(self):
        errors = _errors(ExpenseSchema(), {
            "description": "x",
            "amount": "1",
            "participant_ids": ["alice", "alice"],
        })
        assert errors == {"participant_ids": [ErrorCode.DUPLICATE_PARTICIPANT]}

    def test_amounts_with_equal_policy(self):
        errors = _errors(ExpenseSchema(), {
            "description": "x",
            "amount": "1",
            "manual_amounts": {"alice": "1"},
        })
        assert errors == {"manual_amounts": [ErrorCode.MANUAL_AMOUNTS_FOR_EQUAL_POLICY]}

    def test_manual_policy_needs_amounts(self):
        errors = _errors(
            ExpenseSchema(),
            {"description": "x", "amount": "1", "split_policy": "manual"},
        )
        assert "manual_amounts" in errors

    def test_negative_share(self):
        errors = _errors(ExpenseSchema(), {
            "description": "x",
            "amount": "1",
            "split_policy": "manual",
            "manual_amounts": {"alice": "-1"},
        })
        assert "manual_amounts" in errors

    def test_empty_participant_list_is_left_to_the_engine(self):
        data = ExpenseSchema().load(
            {"description": "x", "amount": "1", "participant_ids": []}
        )
        assert data["participant_ids"] == []


class TestSettlementSchemas:

    def test_create(self):
        data = CreateSettlementSchema().load({"receiver_id": "bob", "amount": "12.50"})
        assert data == {"receiver_id": "bob", "amount": Decimal("12.50")}

    def test_zero_amount(self):
        errors = _errors(CreateSettlementSchema(), {"receiver_id": "bob", "amount": "0"})
        assert errors["amount"] == ["Amount must be greater than zero."]

    def test_precision(self):
        errors = _errors(CreateSettlementSchema(), {"receiver_id": "bob", "amount": "1.005"})
        assert errors["amount"] == [ErrorCode.INVALID_AMOUNT_PRECISION]

    @pytest.mark.parametrize("status", ["accepted", "rejected"])
    def test_resolve_statuses(self, status):
        assert ResolveSettlementSchema().load({"status": status}) == {"status": status}

    def test_pending_is_not_a_resolution(self):
        errors = _errors(ResolveSettlementSchema(), {"status": "pending"})
        assert errors["status"] == [ErrorCode.INVALID_STATUS]


class TestGroupSchemas:

    def test_create_without_icon(self):
        assert CreateGroupSchema().load({"name": "Flat"}) == {"name": "Flat", "icon_url": None}

    def test_whitespace_name(self):
        assert "name" in _errors(CreateGroupSchema(), {"name": "   "})

    def test_name_too_long(self):
        assert "name" in _errors(UpdateGroupSchema(), {"name": "x" * 101})

    def test_bad_icon_url(self):
        assert "icon_url" in _errors(
            CreateGroupSchema(), {"name": "Flat", "icon_url": "not a url"}
        )

    def test_member_email(self):
        assert AddMemberSchema().load({"email": "bob@test.com"}) == {"email": "bob@test.com"}
        assert "email" in _errors(AddMemberSchema(), {"email": "bob"})


class TestInvitationSchema:

    def test_unknown_status(self):
        errors = _errors(RespondInvitationSchema(), {"status": "maybe"})
        assert errors["status"] == [ErrorCode.INVALID_STATUS]
