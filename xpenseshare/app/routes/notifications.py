"""
routes/notifications.py — Notification route handlers.

Endpoints (url_prefix=/api/v1/notifications):
  GET    /notifications              → 200  prune expired read ones, then list
  POST   /notifications/:id/read     → 200  mark as read
  DELETE /notifications/:id          → 200  delete
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify

from xpenseshare.app.extensions import ledger_store
from xpenseshare.app.middleware.auth_middleware import require_auth
from xpenseshare.app.models.notification import Notification
from xpenseshare.app.services import notification_service

notifications_bp = Blueprint("notifications", __name__)


def _serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type.value,
        "reference_id": n.reference_id,
        "message": n.message,
        "is_read": n.is_read,
        "read_at": n.read_at.isoformat() if n.read_at else None,
        "created_at": n.created_at.isoformat(),
    }


@notifications_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    notifications = notification_service.list_notifications(
        g.user_id,
        ledger_store(),
        retention_days=current_app.config["NOTIFICATION_RETENTION_DAYS"],
    )
    return jsonify({
        "data": [_serialize_notification(n) for n in notifications],
        "warnings": [],
    }), 200


@notifications_bp.route("/<notification_id>/read", methods=["POST"])
@require_auth
def mark_as_read(notification_id: str):
    notification = notification_service.mark_as_read(
        notification_id, g.user_id, ledger_store()
    )
    return jsonify({"data": _serialize_notification(notification), "warnings": []}), 200


@notifications_bp.route("/<notification_id>", methods=["DELETE"])
@require_auth
def delete_notification(notification_id: str):
    notification_service.delete_notification(notification_id, g.user_id, ledger_store())
    return jsonify({
        "data": {"deleted": True, "notification_id": notification_id},
        "warnings": [],
    }), 200
