"""
services/split_engine.py — Per-participant owed amounts for an expense.

This file is the SINGLE place that turns (total, policy, participants) into
split rows. Expense creation and expense editing both call build_splits();
neither may compute shares on its own.

Policies:
  equal   every participant owes total / n. There is no remainder
          distribution: the share is kept at SPLIT_SCALE (6 dp, half-even)
          so n shares still sum to the total within SPLIT_TOLERANCE.
  manual  amounts come straight from the caller's per-user map. Missing
          participants owe 0; entries for non-participants are ignored.

Validation (before any write):
  NO_PARTICIPANTS (422)  empty participant list
  SPLIT_MISMATCH  (422)  |sum(amount_owed) - total| > SPLIT_TOLERANCE

Layer rules:
  - Pure functions. No Flask, no store, no I/O.
  - Decimal arithmetic only.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Mapping, Sequence

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.common import SPLIT_SCALE
from xpenseshare.app.models.expense import SplitPolicy

SPLIT_TOLERANCE = Decimal("0.01")

SplitRow = tuple[str, Decimal]


def compute_equal_share(total: Decimal, participant_count: int) -> Decimal:
    """total / participant_count at split storage scale."""
    return (total / Decimal(participant_count)).quantize(
        SPLIT_SCALE, rounding=ROUND_HALF_EVEN
    )


def validate_split_sum(splits: Sequence[SplitRow], total: Decimal) -> None:
    """
    Raises SPLIT_MISMATCH (422) if the split amounts do not add up to `total`
    within SPLIT_TOLERANCE.
    """
    split_sum = sum((amount for _, amount in splits), Decimal("0"))
    if abs(split_sum - total) > SPLIT_TOLERANCE:
        raise AppError(
            ErrorCode.SPLIT_MISMATCH,
            f"Split amounts ({split_sum.normalize():f}) do not add up to the "
            f"expense amount ({total}).",
            422,
            field="manual_amounts",
        )


def build_splits(
        total: Decimal,
        policy: SplitPolicy,
        participant_ids: Sequence[str],
        manual_amounts: Mapping[str, Decimal] | None = None,
) -> list[SplitRow]:
    """
    Produces the ordered [(user_id, amount_owed), ...] list for an expense.

    The order of the result follows `participant_ids`. The result is already
    validated against `total`; callers can persist it as-is.

    Raises:
        AppError(NO_PARTICIPANTS, 422) -- participant_ids is empty.
        AppError(SPLIT_MISMATCH, 422)  -- shares do not add up to total.
    """
    if not participant_ids:
        raise AppError(
            ErrorCode.NO_PARTICIPANTS,
            "An expense must be split between at least one participant.",
            422,
            field="participant_ids",
        )

    policy = SplitPolicy(policy)

    if policy == SplitPolicy.EQUAL:
        share = compute_equal_share(total, len(participant_ids))
        splits = [(uid, share) for uid in participant_ids]
    else:
        amounts = manual_amounts or {}
        splits = [
            (uid, Decimal(amounts.get(uid, Decimal("0"))))
            for uid in participant_ids
        ]

    validate_split_sum(splits, total)
    return splits
