"""
services/invitation_service.py — Responding to in-app group invitations.

An invitation is decided once by its invitee. The decision is one atomic
batch:

  1. UPDATE the invitation's status WHERE status = 'pending'; no row
     updated means a concurrent decision won and nothing is applied
  2. accepted only: INSERT the group membership
  3. DELETE the invitee's matching 'invite' notification

The member limit is re-checked on acceptance: the group may have filled up
since the invitation was sent.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, insert, select, update

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.common import new_id, utcnow
from xpenseshare.app.models.invitation import Invitation, InvitationStatus
from xpenseshare.app.models.membership import Membership
from xpenseshare.app.models.notification import Notification, NotificationType
from xpenseshare.app.services import guard
from xpenseshare.app.store import Guarded, LedgerStore

logger = logging.getLogger(__name__)


def list_invitations(user_id: str, store: LedgerStore) -> list[Invitation]:
    """The user's pending invitations, newest first."""
    return store.all(
        select(Invitation)
        .where(
            Invitation.invitee_id == user_id,
            Invitation.status == InvitationStatus.PENDING,
        )
        .order_by(Invitation.created_at.desc())
    )


def respond_to_invitation(
        invitation_id: str,
        user_id: str,
        status: InvitationStatus | str,
        store: LedgerStore,
) -> Invitation:
    """
    Accepts or rejects a pending invitation addressed to `user_id`.

    Raises:
        AppError(INVITATION_NOT_FOUND, 404)  -- missing, or addressed to someone else
        AppError(INVALID_STATUS, 400)        -- status is not accepted/rejected
        AppError(INVALID_TRANSITION, 409)    -- already decided
        AppError(ALREADY_MEMBER, 409)        -- accepting while already a member
        AppError(MEMBER_LIMIT_EXCEEDED, 422) -- group filled up meanwhile
    """
    invitation = store.get(Invitation, invitation_id)
    if invitation is None or invitation.invitee_id != user_id:
        raise AppError(
            ErrorCode.INVITATION_NOT_FOUND,
            f"Invitation {invitation_id} does not exist.",
            404,
        )

    try:
        decision = InvitationStatus(status)
    except ValueError:
        decision = None
    if decision not in (InvitationStatus.ACCEPTED, InvitationStatus.REJECTED):
        raise AppError(
            ErrorCode.INVALID_STATUS,
            "status must be one of: accepted, rejected.",
            400,
            field="status",
        )

    if invitation.status != InvitationStatus.PENDING:
        raise AppError(
            ErrorCode.INVALID_TRANSITION,
            f"Invitation {invitation_id} is already {invitation.status.value}.",
            409,
        )

    group_id = invitation.group_id
    statements = [
        Guarded(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,
                Invitation.status == InvitationStatus.PENDING,
            )
            .values(status=decision)
            .execution_options(synchronize_session=False),
            AppError(
                ErrorCode.INVALID_TRANSITION,
                f"Invitation {invitation_id} has already been decided.",
                409,
            ),
        ),
    ]

    if decision == InvitationStatus.ACCEPTED:
        group = guard.require_group(group_id, store)
        if guard.is_member(group_id, user_id, store):
            raise AppError(
                ErrorCode.ALREADY_MEMBER,
                "You are already a member of this group.",
                409,
            )
        guard.check_member_quota(group, store)
        statements.append(
            insert(Membership).values(
                id=new_id(),
                group_id=group_id,
                user_id=user_id,
                joined_at=utcnow(),
            )
        )

    statements.append(
        delete(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.type == NotificationType.INVITE,
            Notification.reference_id == invitation_id,
        )
        .execution_options(synchronize_session=False)
    )

    store.batch(statements, mode="write")
    logger.info("Invitation %s %s by %s", invitation_id, decision.value, user_id)

    return store.get(Invitation, invitation_id)
