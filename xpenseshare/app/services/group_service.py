"""
services/group_service.py — Group and membership business logic.

Authorization (all checks delegated to services/guard.py):
  - Read group data:   any member
  - Rename / delete:   group creator only
  - Add member:        group creator only
  - Remove member:     group creator only; nobody may remove themselves

Adding a member is addressed by email:
  - a registered user (a profile with that email) gets an Invitation row and
    an 'invite' notification, written together in one batch; they join once
    they accept it (services/invitation_service.py)
  - an unknown email gets an invite email and nothing is stored

Deleting a group removes everything the group owns in ONE batch, children
first: notifications pointing at its expenses/invitations, splits, expenses,
settlements, invitations, memberships, then the group row.

Layer rules:
  - No Flask imports. Receives ids, validated dicts and a LedgerStore.
  - Returns plain dicts; the route only wraps them in the envelope.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, insert, or_, select, update

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.common import new_id, utcnow
from xpenseshare.app.models.expense import Expense
from xpenseshare.app.models.group import Group
from xpenseshare.app.models.invitation import Invitation, InvitationStatus
from xpenseshare.app.models.membership import Membership
from xpenseshare.app.models.notification import Notification, NotificationType
from xpenseshare.app.models.profile import Profile
from xpenseshare.app.models.settlement import Settlement
from xpenseshare.app.models.split import Split
from xpenseshare.app.services import guard
from xpenseshare.app.services.notification_service import notification_insert
from xpenseshare.app.store import LedgerStore

logger = logging.getLogger(__name__)

OUTCOME_INVITED_REGISTERED = "invited_registered"
OUTCOME_INVITED_EMAIL      = "invited_email"


# ── Serialisation ──────────────────────────────────────────────────────────

def _build_group_dict(group: Group, member_count: int | None = None) -> dict:
    payload = {
        "id": group.id,
        "name": group.name,
        "icon_url": group.icon_url,
        "created_by": group.created_by,
        "created_at": group.created_at.isoformat(),
    }
    if member_count is not None:
        payload["member_count"] = member_count
    return payload


def _build_member_dict(profile: Profile, joined_at, creator_id: str) -> dict:
    return {
        "user_id": profile.id,
        "full_name": profile.full_name,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
        "joined_at": joined_at.isoformat() if joined_at else None,
        "is_creator": profile.id == creator_id,
    }


# ── Queries ────────────────────────────────────────────────────────────────

def _find_profile_by_email(email: str, store: LedgerStore) -> Profile | None:
    # Emails are not unique across identities; the most recently synced wins.
    return store.one_or_none(
        select(Profile)
        .where(func.lower(Profile.email) == email.strip().lower())
        .order_by(Profile.updated_at.desc(), Profile.id)
        .limit(1)
    )


def _has_pending_invite(group_id: str, user_id: str, store: LedgerStore) -> bool:
    invitation = store.one_or_none(
        select(Invitation).where(
            Invitation.group_id == group_id,
            Invitation.invitee_id == user_id,
            Invitation.status == InvitationStatus.PENDING,
        ).limit(1)
    )
    return invitation is not None


# ── Public service functions ───────────────────────────────────────────────

def create_group(caller_id: str, data: dict, store: LedgerStore) -> dict:
    """
    Creates a group owned by caller_id and makes them its first member.

    Raises:
        AppError(PROFILE_NOT_FOUND, 404)     -- caller never synced a profile
        AppError(GROUP_LIMIT_EXCEEDED, 422)  -- caller is at max_groups
    """
    creator = guard.require_profile(caller_id, store)
    guard.check_group_quota(creator, store)

    group_id = new_id()
    now = utcnow()
    store.batch(
        [
            insert(Group).values(
                id=group_id,
                name=data["name"].strip(),
                icon_url=data.get("icon_url"),
                created_by=caller_id,
                created_at=now,
            ),
            insert(Membership).values(
                id=new_id(),
                group_id=group_id,
                user_id=caller_id,
                joined_at=now,
            ),
        ],
        mode="write",
    )
    logger.info("Group %s created by %s", group_id, caller_id)

    return _build_group_dict(store.get(Group, group_id), member_count=1)


def list_groups(user_id: str, store: LedgerStore) -> list[dict]:
    """Groups the user belongs to, newest first, with their member counts."""
    counts = (
        select(Membership.group_id, func.count(Membership.id).label("member_count"))
        .group_by(Membership.group_id)
        .subquery()
    )
    rows = store.execute(
        select(Group, counts.c.member_count)
        .join(Membership, Membership.group_id == Group.id)
        .join(counts, counts.c.group_id == Group.id)
        .where(Membership.user_id == user_id)
        .order_by(Group.created_at.desc())
    ).all()
    return [_build_group_dict(group, member_count=count) for group, count in rows]


def get_group(group_id: str, caller_id: str, store: LedgerStore) -> dict:
    """Group details with its member list. Caller must be a member."""
    group = guard.require_group(group_id, store)
    guard.require_member(group_id, caller_id, store)

    rows = store.execute(
        select(Profile, Membership.joined_at)
        .join(Membership, Membership.user_id == Profile.id)
        .where(Membership.group_id == group_id)
        .order_by(Membership.joined_at)
    ).all()

    payload = _build_group_dict(group, member_count=len(rows))
    payload["members"] = [
        _build_member_dict(profile, joined_at, group.created_by)
        for profile, joined_at in rows
    ]
    return payload


def rename_group(group_id: str, caller_id: str, data: dict, store: LedgerStore) -> dict:
    group = guard.require_group(group_id, store)
    guard.require_creator(group, caller_id, "rename the group")

    values = {"name": data["name"].strip()}
    if "icon_url" in data:
        values["icon_url"] = data["icon_url"]

    store.execute(
        update(Group)
        .where(Group.id == group_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return _build_group_dict(guard.require_group(group_id, store))


def delete_group(group_id: str, caller_id: str, store: LedgerStore) -> None:
    """
    Deletes the group and everything it owns, atomically.

    Raises:
        AppError(GROUP_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403) -- caller is not the creator
    """
    group = guard.require_group(group_id, store)
    guard.require_creator(group, caller_id, "delete the group")

    expense_ids = select(Expense.id).where(Expense.group_id == group_id)
    invitation_ids = select(Invitation.id).where(Invitation.group_id == group_id)

    statements = [
        delete(Notification).where(
            or_(
                (Notification.type == NotificationType.EXPENSE)
                & Notification.reference_id.in_(expense_ids),
                (Notification.type == NotificationType.INVITE)
                & Notification.reference_id.in_(invitation_ids),
            )
        ),
        delete(Split).where(Split.expense_id.in_(expense_ids)),
        delete(Expense).where(Expense.group_id == group_id),
        delete(Settlement).where(Settlement.group_id == group_id),
        delete(Invitation).where(Invitation.group_id == group_id),
        delete(Membership).where(Membership.group_id == group_id),
        delete(Group).where(Group.id == group_id),
    ]
    store.batch(
        [s.execution_options(synchronize_session=False) for s in statements],
        mode="write",
    )
    logger.info("Group %s deleted by %s", group_id, caller_id)


def add_member(
        group_id: str,
        caller_id: str,
        email: str,
        store: LedgerStore,
        email_client,
) -> dict:
    """
    Invites someone to the group by email address.

    Returns:
        {"outcome": "invited_registered", "invitation_id", "user_id", "email"}
        or {"outcome": "invited_email", "email"}

    Raises:
        AppError(FORBIDDEN, 403)              -- caller is not the creator
        AppError(ALREADY_MEMBER, 409)
        AppError(DUPLICATE_INVITE, 409)       -- a pending invitation exists
        AppError(MEMBER_LIMIT_EXCEEDED, 422)  -- group is full
        AppError(EMAIL_DELIVERY_FAILED, 502)  -- invite email could not be sent
    """
    group = guard.require_group(group_id, store)
    guard.require_creator(group, caller_id, "add members")

    invitee = _find_profile_by_email(email, store)

    if invitee is not None:
        if guard.is_member(group_id, invitee.id, store):
            raise AppError(
                ErrorCode.ALREADY_MEMBER,
                f"{email} is already a member of this group.",
                409,
                field="email",
            )
        if _has_pending_invite(group_id, invitee.id, store):
            raise AppError(
                ErrorCode.DUPLICATE_INVITE,
                f"{email} already has a pending invitation to this group.",
                409,
                field="email",
            )

    guard.check_member_quota(group, store)
    inviter = guard.require_profile(caller_id, store)

    if invitee is None:
        email_client.send_invite(email, group.name, inviter.display_name)
        logger.info("Group %s: emailed invite to unregistered %s", group_id, email)
        return {"outcome": OUTCOME_INVITED_EMAIL, "email": email}

    invitation_id = new_id()
    store.batch(
        [
            insert(Invitation).values(
                id=invitation_id,
                group_id=group_id,
                inviter_id=caller_id,
                invitee_id=invitee.id,
                status=InvitationStatus.PENDING,
                created_at=utcnow(),
            ),
            notification_insert(
                invitee.id,
                NotificationType.INVITE,
                invitation_id,
                f'{inviter.display_name} invited you to join "{group.name}".',
            ),
        ],
        mode="write",
    )
    logger.info("Group %s: invitation %s sent to %s", group_id, invitation_id, invitee.id)
    return {
        "outcome": OUTCOME_INVITED_REGISTERED,
        "invitation_id": invitation_id,
        "user_id": invitee.id,
        "email": email,
    }


def remove_member(
        group_id: str,
        caller_id: str,
        target_user_id: str,
        store: LedgerStore,
) -> None:
    """
    Removes target_user_id from the group. Their past expenses and splits
    stay in the ledger.

    Raises:
        AppError(CANNOT_REMOVE_SELF, 422) -- checked first, for everyone
        AppError(FORBIDDEN, 403)          -- caller is not the creator
        AppError(MEMBER_NOT_FOUND, 404)   -- target is not a member
    """
    group = guard.require_group(group_id, store)
    guard.check_remove_member(group, caller_id, target_user_id)

    removed = store.write(
        delete(Membership)
        .where(
            Membership.group_id == group_id,
            Membership.user_id == target_user_id,
        )
        .execution_options(synchronize_session=False)
    )
    if removed == 0:
        raise AppError(
            ErrorCode.MEMBER_NOT_FOUND,
            f"User {target_user_id} is not a member of group {group_id}.",
            404,
        )
    logger.info("Group %s: %s removed by %s", group_id, target_user_id, caller_id)
