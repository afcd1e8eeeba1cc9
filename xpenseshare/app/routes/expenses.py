"""
routes/expenses.py — Expense route handlers.

Registered at url_prefix=/api/v1 (not /api/v1/expenses) because this blueprint
owns BOTH the group-scoped paths (/groups/:id/expenses) and the
expense-ID paths (/expenses/:id).

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic. No DB queries. No commits: the LedgerStore commits.
  - _serialize_expense() is a pure data-shape helper — not business logic.

Endpoints:
  POST   /groups/:id/expenses   → 201  create expense
  GET    /groups/:id/expenses   → 200  list expenses, newest first
  GET    /expenses/:id          → 200  get expense + splits
  PUT    /expenses/:id          → 200  replace expense + splits
  DELETE /expenses/:id          → 200  delete expense + splits
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from xpenseshare.app.extensions import ledger_store
from xpenseshare.app.middleware.auth_middleware import require_auth
from xpenseshare.app.models.expense import Expense
from xpenseshare.app.schemas.expense_schema import ExpenseSchema
from xpenseshare.app.services import expense_service

expenses_bp = Blueprint("expenses", __name__)


# ── Serialization helper ───────────────────────────────────────────────────

def _serialize_expense(expense: Expense, with_splits: bool = True) -> dict:
    """Converts an Expense ORM object to a plain dict. Amounts as strings."""
    payload = {
        "id": expense.id,
        "group_id": expense.group_id,
        "description": expense.description,
        "amount": expense.amount,
        "payer_id": expense.payer_id,
        "payer_name": expense.payer.display_name if expense.payer else None,
        "created_by": expense.created_by,
        "split_policy": expense.split_policy.value,
        "created_at": expense.created_at.isoformat(),
        "updated_at": expense.updated_at.isoformat() if expense.updated_at else None,
    }
    if with_splits:
        payload["splits"] = [
            {
                "user_id": s.user_id,
                "name": s.profile.display_name if s.profile else None,
                "amount_owed": s.amount_owed,
            }
            for s in expense.splits
        ]
    return payload


# ── Group-scoped expense routes ────────────────────────────────────────────

@expenses_bp.route("/groups/<group_id>/expenses", methods=["POST"])
@require_auth
def create_expense(group_id: str):
    """POST /groups/:id/expenses — Record a new expense."""
    data = ExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.create_expense(
        group_id=group_id,
        caller_id=g.user_id,
        data=data,
        store=ledger_store(),
    )
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 201


@expenses_bp.route("/groups/<group_id>/expenses", methods=["GET"])
@require_auth
def list_expenses(group_id: str):
    """GET /groups/:id/expenses — Expenses of a group with payer names."""
    expenses = expense_service.list_expenses(
        group_id=group_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({
        "data": [_serialize_expense(e, with_splits=False) for e in expenses],
        "warnings": [],
    }), 200


# ── Expense-ID routes ──────────────────────────────────────────────────────

@expenses_bp.route("/expenses/<expense_id>", methods=["GET"])
@require_auth
def get_expense(expense_id: str):
    """GET /expenses/:id — Expense detail including splits and split policy."""
    expense = expense_service.get_expense(
        expense_id=expense_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 200


@expenses_bp.route("/expenses/<expense_id>", methods=["PUT"])
@require_auth
def edit_expense(expense_id: str):
    """PUT /expenses/:id — Replace the expense and its split set."""
    data = ExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.edit_expense(
        expense_id=expense_id,
        caller_id=g.user_id,
        data=data,
        store=ledger_store(),
    )
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 200


@expenses_bp.route("/expenses/<expense_id>", methods=["DELETE"])
@require_auth
def delete_expense(expense_id: str):
    """DELETE /expenses/:id — Recorder or group creator only."""
    expense_service.delete_expense(
        expense_id=expense_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({
        "data": {"deleted": True, "expense_id": expense_id},
        "warnings": [],
    }), 200
