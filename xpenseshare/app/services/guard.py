"""
services/guard.py — Membership & authorization guard.

Every creator-only rule and every quota check lives here so services cannot
drift apart on who may do what.

Creator-only actions (FORBIDDEN, 403 otherwise):
  - delete group, rename group
  - add member, remove member
  - accept / reject a settlement

Expense edit / delete: the expense's recorder (created_by) OR the group
creator.

Quotas (read from the CREATOR's profile, never the caller's):
  GROUP_LIMIT_EXCEEDED  (422)  creating a group past profile.max_groups
  MEMBER_LIMIT_EXCEEDED (422)  adding a member past max_members_per_group;
                               pending invitations do not count

Layer rules:
  - No Flask imports. Reads go through the LedgerStore passed in.
  - Guards raise AppError and return nothing useful on success, except the
    lookup helpers which return the row they loaded.
"""

from __future__ import annotations

from sqlalchemy import func, select

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.expense import Expense
from xpenseshare.app.models.group import Group
from xpenseshare.app.models.membership import Membership
from xpenseshare.app.models.profile import Profile
from xpenseshare.app.store import LedgerStore


# ── Lookups ────────────────────────────────────────────────────────────────

def require_profile(user_id: str, store: LedgerStore) -> Profile:
    """Returns the Profile or raises PROFILE_NOT_FOUND (404)."""
    profile = store.get(Profile, user_id)
    if profile is None:
        raise AppError(
            ErrorCode.PROFILE_NOT_FOUND,
            "No profile exists for this user. Sync the profile first.",
            404,
        )
    return profile


def require_group(group_id: str, store: LedgerStore) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = store.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def is_member(group_id: str, user_id: str, store: LedgerStore) -> bool:
    membership = store.one_or_none(
        select(Membership).where(
            Membership.group_id == group_id,
            Membership.user_id == user_id,
        )
    )
    return membership is not None


def member_ids(group_id: str, store: LedgerStore) -> list[str]:
    """user_ids of the group's current members, oldest membership first."""
    return store.all(
        select(Membership.user_id)
        .where(Membership.group_id == group_id)
        .order_by(Membership.joined_at)
    )


def member_count(group_id: str, store: LedgerStore) -> int:
    return store.scalar(
        select(func.count(Membership.id)).where(Membership.group_id == group_id)
    )


# ── Membership ─────────────────────────────────────────────────────────────

def require_member(group_id: str, user_id: str, store: LedgerStore) -> None:
    """
    Raises FORBIDDEN (403) if user_id is not a member of group_id.
    Non-members receive 403, not 404.
    """
    if not is_member(group_id, user_id, store):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not a member of group {group_id}.",
            403,
        )


def require_creator(group: Group, caller_id: str, action: str) -> None:
    """Raises FORBIDDEN (403) unless caller_id created `group`."""
    if caller_id != group.created_by:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"Only the group creator may {action}.",
            403,
        )


def check_remove_member(group: Group, caller_id: str, target_user_id: str) -> None:
    """
    Removing oneself is always rejected, creator or not, and is checked
    before the creator rule.
    """
    if caller_id == target_user_id:
        raise AppError(
            ErrorCode.CANNOT_REMOVE_SELF,
            "You cannot remove yourself from a group.",
            422,
        )
    require_creator(group, caller_id, "remove members")


def require_expense_editor(expense: Expense, group: Group, caller_id: str) -> None:
    """The recorder of the expense or the group creator; FORBIDDEN otherwise."""
    if caller_id not in (expense.created_by, group.created_by):
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the person who recorded this expense or the group creator "
            "may change it.",
            403,
        )


# ── Quotas ─────────────────────────────────────────────────────────────────

def check_group_quota(creator: Profile, store: LedgerStore) -> None:
    """Raises GROUP_LIMIT_EXCEEDED (422) when `creator` is at max_groups."""
    owned = store.scalar(
        select(func.count(Group.id)).where(Group.created_by == creator.id)
    )
    if owned >= creator.max_groups:
        raise AppError(
            ErrorCode.GROUP_LIMIT_EXCEEDED,
            f"Your plan allows at most {creator.max_groups} groups.",
            422,
        )


def check_member_quota(group: Group, store: LedgerStore) -> None:
    """
    Raises MEMBER_LIMIT_EXCEEDED (422) when the group is already at its
    creator's max_members_per_group. Only actual memberships count.
    """
    creator = require_profile(group.created_by, store)
    current = member_count(group.id, store)
    if current >= creator.max_members_per_group:
        raise AppError(
            ErrorCode.MEMBER_LIMIT_EXCEEDED,
            f"This group has reached its limit of "
            f"{creator.max_members_per_group} members.",
            422,
        )
