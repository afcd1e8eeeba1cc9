"""
models/profile.py — Profile table definition.

One row per authenticated user, keyed by the identity provider's opaque user
id. Upserted on every session sync. No business logic.

The subscription tier decides the quotas enforced when groups are created
and members are added. TIER_LIMITS is the single place those numbers live.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from xpenseshare.app.extensions import db
from xpenseshare.app.models.common import _enum_values, utcnow


class SubscriptionTier(str, enum.Enum):
    FREE    = "free"
    PREMIUM = "premium"


# tier -> (max_groups, max_members_per_group)
TIER_LIMITS: dict[SubscriptionTier, tuple[int, int]] = {
    SubscriptionTier.FREE:    (10, 15),
    SubscriptionTier.PREMIUM: (50, 99),
}


class Profile(db.Model):
    __tablename__ = "profiles"

    # Identity-provider user id (opaque, stable).
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,   # add-member looks invitees up by email
    )

    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    subscription_tier: Mapped[SubscriptionTier] = mapped_column(
        Enum(
            SubscriptionTier,
            name="subscription_tier_enum",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=SubscriptionTier.FREE,
        server_default=SubscriptionTier.FREE.value,
    )

    max_groups: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=TIER_LIMITS[SubscriptionTier.FREE][0],
        server_default=str(TIER_LIMITS[SubscriptionTier.FREE][0]),
    )

    max_members_per_group: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=TIER_LIMITS[SubscriptionTier.FREE][1],
        server_default=str(TIER_LIMITS[SubscriptionTier.FREE][1]),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Someone"

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Profile id={self.id!r} tier={self.subscription_tier.value}>"
