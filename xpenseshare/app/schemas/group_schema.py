"""
schemas/group_schema.py — Marshmallow schemas for group and membership endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    email format.
  - services/group_service.py + services/guard.py:
      - creator-only actions (FORBIDDEN)
      - ALREADY_MEMBER / DUPLICATE_INVITE (membership / invitation lookups)
      - GROUP_LIMIT_EXCEEDED / MEMBER_LIMIT_EXCEEDED (quota lookups)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


# validate.Length(min=1) alone allows whitespace-only strings like "   ".
# This validator strips first, mirroring CHECK(LENGTH(TRIM(name)) > 0).
def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


_NAME_VALIDATORS = [
    validate.Length(
        min=1,
        max=100,
        error="Group name must be between 1 and 100 characters.",
    ),
    _validate_non_empty_after_trim,
]


class CreateGroupSchema(Schema):
    """POST /groups — name required, icon optional."""

    name = fields.Str(required=True, validate=_NAME_VALIDATORS)

    icon_url = fields.Url(load_default=None, allow_none=True)


class UpdateGroupSchema(Schema):
    """PATCH /groups/:id — rename (creator only). icon_url may also change."""

    name = fields.Str(required=True, validate=_NAME_VALIDATORS)

    icon_url = fields.Url(allow_none=True)


class AddMemberSchema(Schema):
    """
    POST /groups/:id/members

    Members are invited by email. Whether the address belongs to a registered
    profile decides between an in-app invitation and an invite email; that is
    a DB concern handled in group_service.py.
    """

    email = fields.Email(required=True, validate=validate.Length(max=255))
