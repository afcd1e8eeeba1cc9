"""
models/expense.py — Expense table definition.

No business logic. No imports from services or routes.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - `payer_id` is who paid; `created_by` is who recorded it. Edit/delete
    rights go to the recorder or the group creator, never to the payer as such.
  - `split_policy` is persisted so an edit screen can tell an equal split from
    a manual one without guessing from the stored amounts.
  - Splits are owned exclusively by their expense and are replaced wholesale
    on edit.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import _enum_values, new_id, utcnow


class SplitPolicy(str, enum.Enum):
    EQUAL  = "equal"
    MANUAL = "manual"


class Expense(db.Model):
    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_expenses_description_nonempty",
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    group_id: Mapped[str] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    payer_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_by: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
    )

    split_policy: Mapped[SplitPolicy] = mapped_column(
        Enum(
            SplitPolicy,
            name="split_policy_enum",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=SplitPolicy.EQUAL,
        server_default=SplitPolicy.EQUAL.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # Set on every successful edit.
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    payer: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile",
        foreign_keys=[payer_id],
    )

    splits: Mapped[list["Split"]] = relationship(  # noqa: F821
        "Split",
        back_populates="expense",
        order_by="Split.user_id",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id!r} "
            f"group_id={self.group_id!r} "
            f"amount={self.amount}>"
        )
