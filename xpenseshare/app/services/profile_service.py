"""
services/profile_service.py — Profile sync and subscription tier changes.

Profiles are keyed by the identity provider's user id. sync_profile() is
called after every sign-in with the verified token claims. The first sync
creates the row on the free tier. Later syncs refresh email, name and
avatar and leave tier and limits alone.

Billing is simulated: upgrade / downgrade just rewrite the tier and the
limits from TIER_LIMITS.
"""

from __future__ import annotations

import logging

from sqlalchemy import insert, update

from xpenseshare.app.models.common import utcnow
from xpenseshare.app.models.profile import TIER_LIMITS, Profile, SubscriptionTier
from xpenseshare.app.services import guard
from xpenseshare.app.store import LedgerStore

logger = logging.getLogger(__name__)


def serialize_profile(profile: Profile) -> dict:
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "avatar_url": profile.avatar_url,
        "subscription_tier": profile.subscription_tier.value,
        "max_groups": profile.max_groups,
        "max_members_per_group": profile.max_members_per_group,
    }


def sync_profile(user_id: str, claims: dict, store: LedgerStore) -> Profile:
    """Upserts the caller's profile from identity claims."""
    details = {
        "email": claims.get("email"),
        "full_name": claims.get("name"),
        "avatar_url": claims.get("picture"),
        "updated_at": utcnow(),
    }

    if store.get(Profile, user_id) is None:
        max_groups, max_members = TIER_LIMITS[SubscriptionTier.FREE]
        store.execute(
            insert(Profile).values(
                id=user_id,
                subscription_tier=SubscriptionTier.FREE,
                max_groups=max_groups,
                max_members_per_group=max_members,
                **details,
            )
        )
        logger.info("Profile %s created", user_id)
    else:
        # A claim missing from this token keeps the stored value.
        store.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(**{k: v for k, v in details.items() if v is not None})
            .execution_options(synchronize_session=False)
        )

    return guard.require_profile(user_id, store)


def get_profile(user_id: str, store: LedgerStore) -> Profile:
    return guard.require_profile(user_id, store)


def set_tier(user_id: str, tier: SubscriptionTier, store: LedgerStore) -> Profile:
    """Moves the user to `tier` and applies that tier's limits."""
    guard.require_profile(user_id, store)
    max_groups, max_members = TIER_LIMITS[tier]
    store.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(
            subscription_tier=tier,
            max_groups=max_groups,
            max_members_per_group=max_members,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    logger.info("Profile %s moved to %s tier", user_id, tier.value)
    return guard.require_profile(user_id, store)
