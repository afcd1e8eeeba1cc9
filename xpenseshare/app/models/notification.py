"""
models/notification.py — Notification table definition.

`reference_id` points at an Invitation (type=invite) or an Expense
(type=expense). It is not a foreign key since it targets two tables.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import _enum_values, new_id, utcnow


class NotificationType(str, enum.Enum):
    INVITE  = "invite"
    EXPENSE = "expense"


class Notification(db.Model):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    user_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[NotificationType] = mapped_column(
        Enum(
            NotificationType,
            name="notification_type_enum",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
    )

    reference_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    message: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="0",
    )

    read_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Notification id={self.id!r} user_id={self.user_id!r} "
            f"type={self.type.value} read={self.is_read}>"
        )
