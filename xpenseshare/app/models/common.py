"""
models/common.py — Column helpers shared by every table module.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal


# Scale of expense_splits.amount_owed. Equal shares (e.g. 100 / 7) are kept at
# this precision so that a group's worth of shares still sums to the total
# within the split tolerance.
SPLIT_SCALE = Decimal("0.000001")

CENT = Decimal("0.01")


def new_id() -> str:
    """Opaque row identifier: 32 lowercase hex characters."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'manual'), not names ('MANUAL')."""
    return [member.value for member in enum_cls]
