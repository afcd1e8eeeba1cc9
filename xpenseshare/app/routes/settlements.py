"""
routes/settlements.py — Settlement route handlers.

Registered at url_prefix=/api/v1 because it serves both
/groups/:id/settlements and /settlements/:id/resolve.

Endpoints:
  POST   /groups/:id/settlements      → 201  propose a settlement (pending)
  GET    /groups/:id/settlements      → 200  list a group's settlements
  POST   /settlements/:id/resolve     → 200  accept / reject (creator only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from xpenseshare.app.extensions import ledger_store
from xpenseshare.app.middleware.auth_middleware import require_auth
from xpenseshare.app.models.settlement import Settlement
from xpenseshare.app.schemas.settlement_schema import (
    CreateSettlementSchema,
    ResolveSettlementSchema,
)
from xpenseshare.app.services import settlement_service

settlements_bp = Blueprint("settlements", __name__)


def _serialize_settlement(s: Settlement) -> dict:
    return {
        "id": s.id,
        "group_id": s.group_id,
        "sender_id": s.sender_id,
        "sender_name": s.sender.display_name if s.sender else None,
        "receiver_id": s.receiver_id,
        "receiver_name": s.receiver.display_name if s.receiver else None,
        "amount": s.amount,
        "status": s.status.value,
        "created_at": s.created_at.isoformat(),
        "resolved_at": s.resolved_at.isoformat() if s.resolved_at else None,
        "resolved_by": s.resolved_by,
    }


@settlements_bp.route("/groups/<group_id>/settlements", methods=["POST"])
@require_auth
def create_settlement(group_id: str):
    """
    POST /groups/:id/settlements — the caller (g.user_id) is the sender.
    Balances do not change until the group creator accepts it.
    """
    data = CreateSettlementSchema().load(request.get_json(force=True) or {})
    settlement = settlement_service.create_settlement(
        group_id=group_id,
        sender_id=g.user_id,
        data=data,
        store=ledger_store(),
    )
    return jsonify({"data": _serialize_settlement(settlement), "warnings": []}), 201


@settlements_bp.route("/groups/<group_id>/settlements", methods=["GET"])
@require_auth
def list_settlements(group_id: str):
    settlements = settlement_service.list_settlements(
        group_id=group_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({
        "data": [_serialize_settlement(s) for s in settlements],
        "warnings": [],
    }), 200


@settlements_bp.route("/settlements/<settlement_id>/resolve", methods=["POST"])
@require_auth
def resolve_settlement(settlement_id: str):
    """POST /settlements/:id/resolve — {"status": "accepted" | "rejected"}"""
    data = ResolveSettlementSchema().load(request.get_json(force=True) or {})
    settlement = settlement_service.resolve_settlement(
        settlement_id=settlement_id,
        caller_id=g.user_id,
        status=data["status"],
        store=ledger_store(),
    )
    return jsonify({"data": _serialize_settlement(settlement), "warnings": []}), 200
