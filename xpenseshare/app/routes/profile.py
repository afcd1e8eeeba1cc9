"""
routes/profile.py — Profile route handlers.

Endpoints (url_prefix=/api/v1/profile):
  POST /profile/sync        → 200  upsert from the verified token's claims
  GET  /profile             → 200  caller's profile, tier and limits
  POST /profile/upgrade     → 200  premium tier (simulated billing)
  POST /profile/downgrade   → 200  free tier
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from xpenseshare.app.extensions import ledger_store
from xpenseshare.app.middleware.auth_middleware import require_auth
from xpenseshare.app.models.profile import SubscriptionTier
from xpenseshare.app.services import profile_service

profile_bp = Blueprint("profile", __name__)


@profile_bp.route("/sync", methods=["POST"])
@require_auth
def sync_profile():
    """
    POST /profile/sync — called by the client after every sign-in.
    Name, email and avatar come from the token (g.identity), not the body.
    """
    profile = profile_service.sync_profile(g.user_id, g.identity, ledger_store())
    return jsonify({"data": profile_service.serialize_profile(profile), "warnings": []}), 200


@profile_bp.route("", methods=["GET"])
@require_auth
def get_profile():
    profile = profile_service.get_profile(g.user_id, ledger_store())
    return jsonify({"data": profile_service.serialize_profile(profile), "warnings": []}), 200


@profile_bp.route("/upgrade", methods=["POST"])
@require_auth
def upgrade():
    profile = profile_service.set_tier(g.user_id, SubscriptionTier.PREMIUM, ledger_store())
    return jsonify({"data": profile_service.serialize_profile(profile), "warnings": []}), 200


@profile_bp.route("/downgrade", methods=["POST"])
@require_auth
def downgrade():
    profile = profile_service.set_tier(g.user_id, SubscriptionTier.FREE, ledger_store())
    return jsonify({"data": profile_service.serialize_profile(profile), "warnings": []}), 200
