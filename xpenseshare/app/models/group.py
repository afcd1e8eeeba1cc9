"""
models/group.py — Group table definition.

No business logic. No imports from services or routes.

`created_by` is set once at creation and never updated: the creator is the
group's single authority over membership, settlements and the group's
lifecycle (see services/guard.py).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import new_id, utcnow


class Group(db.Model):
    __tablename__ = "groups"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    icon_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    created_by: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,   # group quota counts groups per creator
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    creator: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile",
        foreign_keys=[created_by],
    )

    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="group",
        order_by="Membership.joined_at",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id!r} name={self.name!r}>"
