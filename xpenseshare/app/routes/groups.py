"""
routes/groups.py — Group and membership route handlers.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic. No DB queries. No commits: the LedgerStore commits.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups                        → 201  create group
  GET    /groups                        → 200  list caller's groups
  GET    /groups/:id                    → 200  group + members
  PATCH  /groups/:id                    → 200  rename (creator only)
  DELETE /groups/:id                    → 200  delete with everything it owns
  POST   /groups/:id/members            → 201  invite by email (creator only)
  DELETE /groups/:id/members/:uid       → 200  remove member (creator only)
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from xpenseshare.app.extensions import ledger_store
from xpenseshare.app.middleware.auth_middleware import require_auth
from xpenseshare.app.schemas.group_schema import (
    AddMemberSchema,
    CreateGroupSchema,
    UpdateGroupSchema,
)
from xpenseshare.app.services import group_service
from xpenseshare.app.services.email_service import EmailClient

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Create a group. Caller becomes creator and first member."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        caller_id=g.user_id,
        data=data,
        store=ledger_store(),
    )
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/", methods=["GET"])
@require_auth
def list_groups():
    """GET /groups — Groups the caller belongs to, with member counts."""
    result = group_service.list_groups(user_id=g.user_id, store=ledger_store())
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<group_id>", methods=["GET"])
@require_auth
def get_group(group_id: str):
    """GET /groups/:id — Group details with member list. Caller must be member."""
    result = group_service.get_group(
        group_id=group_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<group_id>", methods=["PATCH"])
@require_auth
def rename_group(group_id: str):
    data = UpdateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.rename_group(
        group_id=group_id,
        caller_id=g.user_id,
        data=data,
        store=ledger_store(),
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<group_id>", methods=["DELETE"])
@require_auth
def delete_group(group_id: str):
    group_service.delete_group(
        group_id=group_id,
        caller_id=g.user_id,
        store=ledger_store(),
    )
    return jsonify({
        "data": {"deleted": True, "group_id": group_id},
        "warnings": [],
    }), 200


@groups_bp.route("/<group_id>/members", methods=["POST"])
@require_auth
def add_member(group_id: str):
    """
    POST /groups/:id/members — Invite someone by email.

    data.outcome is "invited_registered" (in-app invitation) or
    "invited_email" (the address has no profile; an invite email was sent).
    """
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    result = group_service.add_member(
        group_id=group_id,
        caller_id=g.user_id,
        email=data["email"],
        store=ledger_store(),
        email_client=EmailClient.from_config(current_app.config),
    )
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<group_id>/members/<target_uid>", methods=["DELETE"])
@require_auth
def remove_member(group_id: str, target_uid: str):
    """DELETE /groups/:id/members/:uid — Creator only; never yourself."""
    group_service.remove_member(
        group_id=group_id,
        caller_id=g.user_id,
        target_user_id=target_uid,
        store=ledger_store(),
    )
    return jsonify({
        "data": {
            "removed": True,
            "group_id": group_id,
            "user_id": target_uid,
        },
        "warnings": [],
    }), 200
