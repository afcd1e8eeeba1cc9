"""
routes/invitations.py — Invitation route handlers.

Endpoints (url_prefix=/api/v1/invitations):
  GET  /invitations                  → 200  caller's pending invitations
  POST /invitations/:id/respond      → 200  accept / reject
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from xpenseshare.app.extensions import ledger_store
from xpenseshare.app.middleware.auth_middleware import require_auth
from xpenseshare.app.models.invitation import Invitation
from xpenseshare.app.schemas.invitation_schema import RespondInvitationSchema
from xpenseshare.app.services import invitation_service

invitations_bp = Blueprint("invitations", __name__)


def _serialize_invitation(inv: Invitation) -> dict:
    return {
        "id": inv.id,
        "group_id": inv.group_id,
        "group_name": inv.group.name if inv.group else None,
        "inviter_id": inv.inviter_id,
        "inviter_name": inv.inviter.display_name if inv.inviter else None,
        "invitee_id": inv.invitee_id,
        "status": inv.status.value,
        "created_at": inv.created_at.isoformat(),
    }


@invitations_bp.route("", methods=["GET"])
@require_auth
def list_invitations():
    invitations = invitation_service.list_invitations(g.user_id, ledger_store())
    return jsonify({
        "data": [_serialize_invitation(i) for i in invitations],
        "warnings": [],
    }), 200


@invitations_bp.route("/<invitation_id>/respond", methods=["POST"])
@require_auth
def respond(invitation_id: str):
    """POST /invitations/:id/respond — {"status": "accepted" | "rejected"}"""
    data = RespondInvitationSchema().load(request.get_json(force=True) or {})
    invitation = invitation_service.respond_to_invitation(
        invitation_id,
        g.user_id,
        data["status"],
        ledger_store(),
    )
    return jsonify({"data": _serialize_invitation(invitation), "warnings": []}), 200
