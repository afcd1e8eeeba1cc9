"""
models/settlement.py — Settlement table definition.

A settlement records a claim that `sender_id` paid `receiver_id` outside the
app. No business logic here; the state machine lives in
services/settlement_service.py.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - status: pending -> accepted | rejected. Both outcomes are terminal.
  - Only ACCEPTED rows take part in balance computation.
  - resolved_at / resolved_by record who decided and when.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import _enum_values, new_id, utcnow


class SettlementStatus(str, enum.Enum):
    PENDING  = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Settlement(db.Model):
    __tablename__ = "settlements"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlements_amount_positive"),
        CheckConstraint(
            "sender_id <> receiver_id",
            name="ck_settlements_no_self_settlement",
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    group_id: Mapped[str] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    sender_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    receiver_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    status: Mapped[SettlementStatus] = mapped_column(
        Enum(
            SettlementStatus,
            name="settlement_status_enum",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=SettlementStatus.PENDING,
        server_default=SettlementStatus.PENDING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    resolved_by: Mapped[str | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    sender: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile",
        foreign_keys=[sender_id],
    )

    receiver: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile",
        foreign_keys=[receiver_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Settlement id={self.id!r} "
            f"from={self.sender_id!r} "
            f"to={self.receiver_id!r} "
            f"amount={self.amount} "
            f"status={self.status.value}>"
        )
