"""
models/invitation.py — Invitation table definition.

An in-app invitation to a registered user. Accepting it creates the
membership; either decision is final.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import _enum_values, new_id, utcnow


class InvitationStatus(str, enum.Enum):
    PENDING  = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Invitation(db.Model):
    __tablename__ = "invitations"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    group_id: Mapped[str] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    inviter_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
    )

    invitee_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[InvitationStatus] = mapped_column(
        Enum(
            InvitationStatus,
            name="invitation_status_enum",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=InvitationStatus.PENDING,
        server_default=InvitationStatus.PENDING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship("Group")  # noqa: F821

    inviter: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile",
        foreign_keys=[inviter_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Invitation id={self.id!r} group_id={self.group_id!r} "
            f"invitee_id={self.invitee_id!r} status={self.status.value}>"
        )
