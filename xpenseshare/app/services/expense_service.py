"""
services/expense_service.py — Expense business logic.

Rules enforced here:
  FORBIDDEN (403)              caller must be a group member (all operations)
  PAYER_NOT_MEMBER (422)       payer_id must be a group member
  SPLIT_USER_NOT_MEMBER (422)  every participant must be a group member
  NO_PARTICIPANTS / SPLIT_MISMATCH (422)   from services/split_engine.py

Authorization for edit / delete (services/guard.py):
  the member who recorded the expense (created_by) OR the group creator.

Atomicity:
  - create:  INSERT expense + INSERT every split               -> one batch
  - edit:    UPDATE expense, DELETE all splits, INSERT splits  -> one batch
  - delete:  DELETE splits, DELETE its notifications, DELETE expense -> one batch
  A split-sum failure is raised before the batch is built, so a rejected
  expense leaves no rows behind.

After a successful create, the other participants get an 'expense'
notification. That write is best-effort and never fails the create.

Layer rules:
  - No Flask imports. Receives ids, validated dicts and a LedgerStore.
  - Returns ORM objects; routes serialise them.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import delete, insert, select, update

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.common import new_id, utcnow
from xpenseshare.app.models.expense import Expense, SplitPolicy
from xpenseshare.app.models.notification import Notification, NotificationType
from xpenseshare.app.models.split import Split
from xpenseshare.app.services import guard, notification_service
from xpenseshare.app.services.split_engine import build_splits
from xpenseshare.app.store import LedgerStore

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_expense_or_404(expense_id: str, store: LedgerStore) -> Expense:
    expense = store.get(Expense, expense_id)
    if expense is None:
        raise AppError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Expense {expense_id} does not exist.",
            404,
        )
    return expense


def _validate_payer_is_member(payer_id: str, group_id: str, members: set[str]) -> None:
    if payer_id not in members:
        raise AppError(
            ErrorCode.PAYER_NOT_MEMBER,
            f"User {payer_id} is not a member of group {group_id}.",
            422,
            field="payer_id",
        )


def _validate_participants_are_members(
        participant_ids: list[str],
        group_id: str,
        members: set[str],
) -> None:
    for uid in participant_ids:
        if uid not in members:
            raise AppError(
                ErrorCode.SPLIT_USER_NOT_MEMBER,
                f"User {uid} is not a member of group {group_id}.",
                422,
                field="participant_ids",
            )


def _resolve_splits(
        group_id: str,
        default_payer_id: str,
        data: dict,
        store: LedgerStore,
) -> tuple[str, SplitPolicy, list[tuple[str, Decimal]]]:
    """
    Shared by create and edit: membership checks, then the split engine.

    payer_id defaults to `default_payer_id`; participants default to every
    current member of the group.
    """
    member_ids = guard.member_ids(group_id, store)
    members = set(member_ids)

    payer_id = data.get("payer_id") or default_payer_id
    _validate_payer_is_member(payer_id, group_id, members)

    participant_ids = data.get("participant_ids")
    if participant_ids is None:
        participant_ids = member_ids
    _validate_participants_are_members(participant_ids, group_id, members)

    policy = SplitPolicy(data.get("split_policy", SplitPolicy.EQUAL))
    splits = build_splits(
        data["amount"],
        policy,
        participant_ids,
        data.get("manual_amounts"),
    )
    return payer_id, policy, splits


def _split_inserts(expense_id: str, splits: list[tuple[str, Decimal]]) -> list:
    return [
        insert(Split).values(
            id=new_id(),
            expense_id=expense_id,
            user_id=uid,
            amount_owed=amount,
        )
        for uid, amount in splits
    ]


# ── Public service functions ───────────────────────────────────────────────

def create_expense(
        group_id: str,
        caller_id: str,
        data: dict,
        store: LedgerStore,
) -> Expense:
    """
    Records a new expense and its splits.

    Args:
        group_id:  The group this expense belongs to.
        caller_id: The authenticated user recording it; stored as created_by.
        data:      Validated dict from ExpenseSchema.

    Returns:
        The new Expense with its splits.
    """
    guard.require_group(group_id, store)
    guard.require_member(group_id, caller_id, store)

    payer_id, policy, splits = _resolve_splits(group_id, caller_id, data, store)

    expense_id = new_id()
    statements = [
        insert(Expense).values(
            id=expense_id,
            group_id=group_id,
            description=data["description"].strip(),
            amount=data["amount"],
            payer_id=payer_id,
            created_by=caller_id,
            split_policy=policy,
            created_at=utcnow(),
        ),
        *_split_inserts(expense_id, splits),
    ]
    store.batch(statements, mode="write")
    logger.info(
        "Expense %s recorded in group %s: %s paid %s (%s, %d splits)",
        expense_id, group_id, payer_id, data["amount"], policy.value, len(splits),
    )

    expense = _get_expense_or_404(expense_id, store)

    recipients = [uid for uid, _ in splits if uid != caller_id]
    notification_service.notify(
        recipients,
        NotificationType.EXPENSE,
        expense_id,
        f'New expense "{expense.description}" ({expense.amount}) was added.',
        store,
    )
    return expense


def list_expenses(group_id: str, caller_id: str, store: LedgerStore) -> list[Expense]:
    """All expenses of a group, newest first. Caller must be a member."""
    guard.require_group(group_id, store)
    guard.require_member(group_id, caller_id, store)

    return store.all(
        select(Expense)
        .where(Expense.group_id == group_id)
        .order_by(Expense.created_at.desc())
    )


def get_expense(expense_id: str, caller_id: str, store: LedgerStore) -> Expense:
    """One expense with its splits and split policy."""
    expense = _get_expense_or_404(expense_id, store)
    guard.require_member(expense.group_id, caller_id, store)
    return expense


def edit_expense(
        expense_id: str,
        caller_id: str,
        data: dict,
        store: LedgerStore,
) -> Expense:
    """
    Replaces an expense's details and its whole split set.

    The split set is never patched: every existing split is deleted and the
    freshly computed set inserted, in the same batch as the expense update.
    Validation is identical to create.
    """
    expense = _get_expense_or_404(expense_id, store)
    guard.require_member(expense.group_id, caller_id, store)
    group = guard.require_group(expense.group_id, store)
    guard.require_expense_editor(expense, group, caller_id)

    payer_id, policy, splits = _resolve_splits(
        expense.group_id, expense.payer_id, data, store
    )

    statements = [
        update(Expense)
        .where(Expense.id == expense_id)
        .values(
            description=data["description"].strip(),
            amount=data["amount"],
            payer_id=payer_id,
            split_policy=policy,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False),
        delete(Split)
        .where(Split.expense_id == expense_id)
        .execution_options(synchronize_session=False),
        *_split_inserts(expense_id, splits),
    ]
    store.batch(statements, mode="write")
    logger.info("Expense %s edited by %s", expense_id, caller_id)

    return _get_expense_or_404(expense_id, store)


def delete_expense(expense_id: str, caller_id: str, store: LedgerStore) -> None:
    """Hard-deletes an expense, its splits and the notifications about it."""
    expense = _get_expense_or_404(expense_id, store)
    guard.require_member(expense.group_id, caller_id, store)
    group = guard.require_group(expense.group_id, store)
    guard.require_expense_editor(expense, group, caller_id)

    statements = [
        delete(Split).where(Split.expense_id == expense_id),
        delete(Notification).where(
            Notification.type == NotificationType.EXPENSE,
            Notification.reference_id == expense_id,
        ),
        delete(Expense).where(Expense.id == expense_id),
    ]
    store.batch(
        [s.execution_options(synchronize_session=False) for s in statements],
        mode="write",
    )
    logger.info("Expense %s deleted by %s", expense_id, caller_id)
