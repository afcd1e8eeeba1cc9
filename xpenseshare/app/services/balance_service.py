"""
services/balance_service.py — Balance computation and debt simplification.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
Any change to how balances work must be made here; all other behaviour
follows from it.

Canonical formula, per user, optionally scoped to one group:

  gross_owed = sum(split.amount_owed) over splits of OTHER users on expenses
               this user paid
  gross_owes = sum(split.amount_owed) over this user's splits on expenses
               OTHER users paid
  sent       = sum(settlement.amount), ACCEPTED, this user is the sender
  received   = sum(settlement.amount), ACCEPTED, this user is the receiver

  owed = max(0, gross_owed - received)
  owes = max(0, gross_owes - sent)

Notes:
  - A user's own share of an expense they paid appears in neither side.
  - Pending and rejected settlements never move a balance.
  - Nothing is cached. Every call re-reads the store, so two calls with no
    write in between return identical results.
  - Results are quantized to cents on the way out; sums are taken at the
    split storage scale.

Layer rules:
  - No Flask imports. Receives ids and a LedgerStore; returns plain dicts.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal

from sqlalchemy import func, select

from xpenseshare.app.models.common import CENT
from xpenseshare.app.models.expense import Expense
from xpenseshare.app.models.profile import Profile
from xpenseshare.app.models.settlement import Settlement, SettlementStatus
from xpenseshare.app.models.split import Split
from xpenseshare.app.services import guard
from xpenseshare.app.store import LedgerStore


def _as_decimal(value) -> Decimal:
    # SQLite hands back SUM() results as float.
    return value if isinstance(value, Decimal) else Decimal(str(value or 0))


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


# ── Aggregation queries ────────────────────────────────────────────────────

def _gross_owed_stmt(user_id: str, group_id: str | None):
    stmt = (
        select(func.coalesce(func.sum(Split.amount_owed), 0))
        .select_from(Split)
        .join(Expense, Split.expense_id == Expense.id)
        .where(
            Expense.payer_id == user_id,
            Split.user_id != user_id,
        )
    )
    if group_id is not None:
        stmt = stmt.where(Expense.group_id == group_id)
    return stmt


def _gross_owes_stmt(user_id: str, group_id: str | None):
    stmt = (
        select(func.coalesce(func.sum(Split.amount_owed), 0))
        .select_from(Split)
        .join(Expense, Split.expense_id == Expense.id)
        .where(
            Split.user_id == user_id,
            Expense.payer_id != user_id,
        )
    )
    if group_id is not None:
        stmt = stmt.where(Expense.group_id == group_id)
    return stmt


def _accepted_settlements_stmt(column, user_id: str, group_id: str | None):
    stmt = select(func.coalesce(func.sum(Settlement.amount), 0)).where(
        column == user_id,
        Settlement.status == SettlementStatus.ACCEPTED,
    )
    if group_id is not None:
        stmt = stmt.where(Settlement.group_id == group_id)
    return stmt


# ── Core algorithm ─────────────────────────────────────────────────────────

def get_user_balance(
        user_id: str,
        store: LedgerStore,
        group_id: str | None = None,
) -> dict[str, Decimal]:
    """
    Returns {"owed": Decimal, "owes": Decimal} for `user_id`.

    `owed` is what others owe this user; `owes` is what this user owes
    others. Both are >= 0. With `group_id` set, only that group's expenses
    and settlements are counted.

    Pure read: no state is written.
    """
    gross_owed = _as_decimal(store.scalar(_gross_owed_stmt(user_id, group_id)))
    gross_owes = _as_decimal(store.scalar(_gross_owes_stmt(user_id, group_id)))
    sent = _as_decimal(store.scalar(
        _accepted_settlements_stmt(Settlement.sender_id, user_id, group_id)
    ))
    received = _as_decimal(store.scalar(
        _accepted_settlements_stmt(Settlement.receiver_id, user_id, group_id)
    ))

    owed = max(Decimal("0"), gross_owed - received)
    owes = max(Decimal("0"), gross_owes - sent)

    return {"owed": _to_cents(owed), "owes": _to_cents(owes)}


def simplify_debts(balances: dict[str, Decimal]) -> list[dict]:
    """
    Greedy minimum cash flow debt simplification.

    Repeatedly matches the largest debtor with the largest creditor until one
    side runs out. For N members, produces at most N-1 transactions.

    Args:
        balances: {user_id: net} where net > 0 means the user is owed money.
                  The nets need not sum to exactly zero (an accepted
                  overpayment clamps one side at 0); leftovers are dropped.

    Returns:
        [{"from_user_id", "to_user_id", "amount"}], empty when nothing is owed.
    """
    # Ties break on user_id so the output is stable across calls.
    creditors = sorted(
        [(uid, amt) for uid, amt in balances.items() if amt > 0],
        key=lambda x: (-x[1], x[0]),
    )
    debtors = sorted(
        [(uid, -amt) for uid, amt in balances.items() if amt < 0],
        key=lambda x: (-x[1], x[0]),
    )

    transactions: list[dict] = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        cid, credit = creditors[i]
        did, debt = debtors[j]

        transfer = min(credit, debt)
        transactions.append({
            "from_user_id": did,
            "to_user_id": cid,
            "amount": transfer,
        })

        creditors[i] = (cid, credit - transfer)
        debtors[j] = (did, debt - transfer)

        if creditors[i][1] == 0:
            i += 1
        if debtors[j][1] == 0:
            j += 1

    return transactions


def get_group_balances(
        group_id: str,
        caller_id: str,
        store: LedgerStore,
) -> dict:
    """
    Builds the payload for GET /groups/:id/balances.

    Every current member's owed / owes / net inside this group, plus the
    simplified list of payments that would clear the nets.

    Raises:
        AppError(GROUP_NOT_FOUND, 404) -- group does not exist.
        AppError(FORBIDDEN, 403)       -- caller is not a member.
    """
    guard.require_group(group_id, store)
    guard.require_member(group_id, caller_id, store)

    ids = guard.member_ids(group_id, store)
    profiles = store.all(select(Profile).where(Profile.id.in_(ids))) if ids else []
    names = {p.id: p.display_name for p in profiles}

    nets: dict[str, Decimal] = {}
    members = []
    for uid in ids:
        balance = get_user_balance(uid, store, group_id=group_id)
        net = balance["owed"] - balance["owes"]
        nets[uid] = net
        members.append({
            "user_id": uid,
            "name": names.get(uid, uid),
            "owed": balance["owed"],
            "owes": balance["owes"],
            "net": net,
        })

    suggestions = [
        {
            "from_user_id": t["from_user_id"],
            "from_name": names.get(t["from_user_id"], t["from_user_id"]),
            "to_user_id": t["to_user_id"],
            "to_name": names.get(t["to_user_id"], t["to_user_id"]),
            "amount": t["amount"],
        }
        for t in simplify_debts(nets)
    ]

    return {
        "group_id": group_id,
        "balances": members,
        "suggested_settlements": suggestions,
    }


def get_member_balance(group_id: str, caller_id: str, store: LedgerStore) -> dict:
    """The caller's own owed / owes inside one group. Caller must be a member."""
    guard.require_group(group_id, store)
    guard.require_member(group_id, caller_id, store)
    return {"group_id": group_id, **get_user_balance(caller_id, store, group_id=group_id)}
