"""
services/notification_service.py — In-app notifications.

Notifications are side effects. notify() is best-effort: a failed insert is
logged and swallowed so the operation that triggered it (which has already
committed) still succeeds.

Retention: read notifications whose read_at is older than the retention
window are deleted lazily, as the first step of every list call. There is
no background job.

Ownership: a user can only see, mark or delete their own notifications.
Anything else is reported as NOTIFICATION_NOT_FOUND (404), not FORBIDDEN,
so ids belonging to other users are not disclosed.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable

from sqlalchemy import delete, insert, select, update

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.common import new_id, utcnow
from xpenseshare.app.models.notification import Notification, NotificationType
from xpenseshare.app.store import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 2


def _get_own_notification(
        notification_id: str,
        user_id: str,
        store: LedgerStore,
) -> Notification:
    notification = store.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise AppError(
            ErrorCode.NOTIFICATION_NOT_FOUND,
            f"Notification {notification_id} does not exist.",
            404,
        )
    return notification


def prune_read_notifications(
        user_id: str,
        store: LedgerStore,
        retention_days: int = DEFAULT_RETENTION_DAYS,
) -> int:
    """Deletes the user's read notifications older than the window."""
    cutoff = utcnow() - timedelta(days=retention_days)
    removed = store.write(
        delete(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.is_read.is_(True),
            Notification.read_at < cutoff,
        )
        .execution_options(synchronize_session=False)
    )
    if removed:
        logger.debug("Pruned %d read notifications for %s", removed, user_id)
    return removed


def list_notifications(
        user_id: str,
        store: LedgerStore,
        retention_days: int = DEFAULT_RETENTION_DAYS,
) -> list[Notification]:
    """Prunes expired read notifications, then returns the rest newest first."""
    prune_read_notifications(user_id, store, retention_days)
    return store.all(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
    )


def mark_as_read(notification_id: str, user_id: str, store: LedgerStore) -> Notification:
    _get_own_notification(notification_id, user_id, store)
    store.execute(
        update(Notification)
        .where(Notification.id == notification_id)
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return _get_own_notification(notification_id, user_id, store)


def delete_notification(notification_id: str, user_id: str, store: LedgerStore) -> None:
    _get_own_notification(notification_id, user_id, store)
    store.execute(
        delete(Notification)
        .where(Notification.id == notification_id)
        .execution_options(synchronize_session=False)
    )


# ── Producers ──────────────────────────────────────────────────────────────

def notification_insert(
        user_id: str,
        type_: NotificationType,
        reference_id: str,
        message: str,
):
    """INSERT statement for one notification, for use inside a batch."""
    return insert(Notification).values(
        id=new_id(),
        user_id=user_id,
        type=type_,
        reference_id=reference_id,
        message=message,
        is_read=False,
        created_at=utcnow(),
    )


def notify(
        user_ids: Iterable[str],
        type_: NotificationType,
        reference_id: str,
        message: str,
        store: LedgerStore,
) -> bool:
    """
    Best-effort: records one notification per user in a single batch.

    Returns False (after logging) instead of raising when the write fails.
    """
    statements = [
        notification_insert(uid, type_, reference_id, message) for uid in user_ids
    ]
    if not statements:
        return True
    try:
        store.batch(statements, mode="write")
    except Exception:
        logger.warning(
            "Could not record %s notifications for %s",
            type_.value, reference_id, exc_info=True,
        )
        return False
    return True
