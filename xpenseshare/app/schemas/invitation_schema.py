"""
schemas/invitation_schema.py — Marshmallow schema for invitation responses.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from xpenseshare.app.errors import ErrorCode


class RespondInvitationSchema(Schema):
    """POST /invitations/:id/respond — {"status": "accepted" | "rejected"}"""

    status = fields.Str(
        required=True,
        validate=validate.OneOf(("accepted", "rejected"), error=ErrorCode.INVALID_STATUS),
    )
