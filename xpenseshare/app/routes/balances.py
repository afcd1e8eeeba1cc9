"""
routes/balances.py — Balance route handlers.

Read-only. Every call recomputes from the ledger; nothing is cached.

Endpoints (url_prefix=/api/v1):
  GET /balances                 → 200  caller's owed / owes across all groups
  GET /groups/:id/balance       → 200  caller's owed / owes in one group
  GET /groups/:id/balances      → 200  every member + suggested settlements
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from xpenseshare.app.extensions import ledger_store
from xpenseshare.app.middleware.auth_middleware import require_auth
from xpenseshare.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/balances", methods=["GET"])
@require_auth
def get_my_balance():
    result = balance_service.get_user_balance(g.user_id, ledger_store())
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/groups/<group_id>/balance", methods=["GET"])
@require_auth
def get_my_group_balance(group_id: str):
    result = balance_service.get_member_balance(
        group_id=group_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/groups/<group_id>/balances", methods=["GET"])
@require_auth
def get_group_balances(group_id: str):
    """
    GET /groups/:id/balances

    Response:
      {
        "data": {
          "group_id": "...",
          "balances": [{"user_id", "name", "owed", "owes", "net"}, ...],
          "suggested_settlements": [
            {"from_user_id", "from_name", "to_user_id", "to_name", "amount"}
          ]
        },
        "warnings": []
      }
    """
    result = balance_service.get_group_balances(
        group_id=group_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({"data": result, "warnings": []}), 200
