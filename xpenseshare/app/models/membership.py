"""
models/membership.py — group_members junction table definition.

No business logic. A (group_id, user_id) pair exists at most once.
Rows are written when a group is created (the creator) or an invitation is
accepted, and deleted on member removal or group deletion.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import new_id, utcnow


class Membership(db.Model):
    __tablename__ = "group_members"

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    group_id: Mapped[str] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="memberships",
    )

    profile: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Membership group_id={self.group_id!r} "
            f"user_id={self.user_id!r}>"
        )
