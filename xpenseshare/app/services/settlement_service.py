"""
services/settlement_service.py — Settlement workflow.

State machine:

    pending ──accept──▶ accepted   (terminal)
       │
       └────reject───▶ rejected   (terminal)

Rules enforced here:
  - Create: the sender must be a group member (FORBIDDEN, 403), the receiver
    must be a group member (RECIPIENT_NOT_MEMBER, 422) and must not be the
    sender (SELF_SETTLEMENT, 422). New settlements always start pending.
    The amount is NOT checked against the outstanding balance; a sender may
    pay ahead.
  - Resolve: only the group creator (FORBIDDEN, 403). Only from pending
    (INVALID_TRANSITION, 409). The write is conditional on status still
    being pending, so of two racing resolutions exactly one wins and the
    other gets INVALID_TRANSITION.
  - Only ACCEPTED settlements are visible to balance_service.
  - Resolving never touches notifications.

Layer rules:
  - No Flask imports. Receives ids, validated dicts and a LedgerStore.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import insert, select, update

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.common import new_id, utcnow
from xpenseshare.app.models.settlement import Settlement, SettlementStatus
from xpenseshare.app.services import guard
from xpenseshare.app.store import LedgerStore

logger = logging.getLogger(__name__)

_TERMINAL_STATUSES = (SettlementStatus.ACCEPTED, SettlementStatus.REJECTED)


def _get_settlement_or_404(settlement_id: str, store: LedgerStore) -> Settlement:
    settlement = store.get(Settlement, settlement_id)
    if settlement is None:
        raise AppError(
            ErrorCode.SETTLEMENT_NOT_FOUND,
            f"Settlement {settlement_id} does not exist.",
            404,
        )
    return settlement


# ── Public service functions ───────────────────────────────────────────────

def create_settlement(
        group_id: str,
        sender_id: str,
        data: dict,
        store: LedgerStore,
) -> Settlement:
    """
    Records a pending settlement from sender_id to data["receiver_id"].

    Args:
        group_id:  The group this settlement belongs to.
        sender_id: The authenticated user claiming to have paid.
        data:      Validated dict from CreateSettlementSchema.
                   Keys: receiver_id (str), amount (Decimal).

    Returns:
        The new Settlement, status pending.
    """
    guard.require_group(group_id, store)
    guard.require_member(group_id, sender_id, store)

    receiver_id: str = data["receiver_id"]
    amount: Decimal = data["amount"]

    if receiver_id == sender_id:
        raise AppError(
            ErrorCode.SELF_SETTLEMENT,
            "A settlement cannot be made to yourself.",
            422,
            field="receiver_id",
        )

    if not guard.is_member(group_id, receiver_id, store):
        raise AppError(
            ErrorCode.RECIPIENT_NOT_MEMBER,
            f"User {receiver_id} is not a member of group {group_id}.",
            422,
            field="receiver_id",
        )

    settlement_id = new_id()
    store.execute(
        insert(Settlement).values(
            id=settlement_id,
            group_id=group_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            amount=amount,
            status=SettlementStatus.PENDING,
            created_at=utcnow(),
        )
    )
    logger.info(
        "Settlement %s created in group %s: %s -> %s (%s)",
        settlement_id, group_id, sender_id, receiver_id, amount,
    )
    return store.get(Settlement, settlement_id)


def list_settlements(
        group_id: str,
        caller_id: str,
        store: LedgerStore,
) -> list[Settlement]:
    """All settlements of a group, newest first. Caller must be a member."""
    guard.require_group(group_id, store)
    guard.require_member(group_id, caller_id, store)

    return store.all(
        select(Settlement)
        .where(Settlement.group_id == group_id)
        .order_by(Settlement.created_at.desc())
    )


def resolve_settlement(
        settlement_id: str,
        caller_id: str,
        status: SettlementStatus | str,
        store: LedgerStore,
) -> Settlement:
    """
    Moves a pending settlement to accepted or rejected.

    Raises:
        AppError(SETTLEMENT_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403)           -- caller is not the group creator
        AppError(INVALID_STATUS, 400)      -- target is not accepted/rejected
        AppError(INVALID_TRANSITION, 409)  -- settlement is no longer pending
    """
    settlement = _get_settlement_or_404(settlement_id, store)
    group = guard.require_group(settlement.group_id, store)
    guard.require_creator(group, caller_id, "approve or reject settlements")

    try:
        target = SettlementStatus(status)
    except ValueError:
        target = None
    if target not in _TERMINAL_STATUSES:
        raise AppError(
            ErrorCode.INVALID_STATUS,
            "status must be one of: accepted, rejected.",
            400,
            field="status",
        )

    if settlement.status != SettlementStatus.PENDING:
        raise AppError(
            ErrorCode.INVALID_TRANSITION,
            f"Settlement {settlement_id} is already {settlement.status.value}.",
            409,
        )

    updated = store.write(
        update(Settlement)
        .where(
            Settlement.id == settlement_id,
            Settlement.status == SettlementStatus.PENDING,
        )
        .values(status=target, resolved_at=utcnow(), resolved_by=caller_id)
        .execution_options(synchronize_session=False)
    )
    if updated == 0:
        # Someone else resolved it between our read and our write.
        raise AppError(
            ErrorCode.INVALID_TRANSITION,
            f"Settlement {settlement_id} was resolved by another request.",
            409,
        )

    logger.info(
        "Settlement %s %s by %s", settlement_id, target.value, caller_id,
    )
    return _get_settlement_or_404(settlement_id, store)
