"""
models/split.py — expense_splits table definition.

One row per participant per expense. No business logic.

Key design points:
  - `amount_owed` is Numeric(18, 6): equal shares such as 100 / 7 keep six
    decimal places so their sum stays within one cent of the total.
  - amount_owed may be zero (a manual split can leave a participant at 0).
  - UNIQUE(expense_id, user_id): a user appears once per expense.

The split-sum rule (|sum(amount_owed) - expense.amount| <= 0.01) is enforced
by services/split_engine.py before any write, not here.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import new_id


class Split(db.Model):
    __tablename__ = "expense_splits"

    __table_args__ = (
        UniqueConstraint("expense_id", "user_id", name="uq_expense_splits_expense_user"),
        CheckConstraint("amount_owed >= 0", name="ck_expense_splits_amount_nonnegative"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    expense_id: Mapped[str] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount_owed: Mapped[Decimal] = mapped_column(
        Numeric(18, 6),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    expense: Mapped["Expense"] = relationship(  # noqa: F821
        "Expense",
        back_populates="splits",
    )

    profile: Mapped["Profile"] = relationship(  # noqa: F821
        "Profile",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Split expense_id={self.expense_id!r} "
            f"user_id={self.user_id!r} "
            f"amount_owed={self.amount_owed}>"
        )
