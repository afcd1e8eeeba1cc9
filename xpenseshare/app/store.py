"""
store.py — Ledger Store: the single gateway between services and the database.

Services never call session.execute() or session.commit() themselves. They
build SQLAlchemy statements and hand them to a LedgerStore, which offers two
primitives:

  execute(statement)            one statement; DML is committed immediately
  batch(statements, mode)       an ordered list of statements applied in ONE
                                transaction; all-or-nothing

Any logical write made of several statements (expense + splits, group +
creator membership, cascading deletes) MUST go through batch(). Issuing them
as separate execute() calls would make partial writes observable.

Transport/back-end failures (connection refused, dropped connection, pool
timeout) surface as AppError(STORE_UNAVAILABLE, 503). They are retryable by
the user and are never retried here. Other SQLAlchemy errors roll the session
back and propagate unchanged.

Layer rules:
  - No Flask imports. Routes construct LedgerStore(db.session).
  - Rows come back as typed model instances (see app/models/).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from xpenseshare.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

BATCH_MODES = ("read", "write")

_TRANSPORT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


class Guarded:
    """
    A batch statement that must affect at least one row.

    When it matches nothing, batch() rolls back everything applied so far
    and raises `error`. Used for conditional transitions such as
    `UPDATE ... WHERE status = 'pending'`.
    """

    def __init__(self, statement, error: AppError) -> None:
        self.statement = statement
        self.error = error


def _unavailable(exc: Exception) -> AppError:
    logger.warning("Ledger store unavailable: %s", exc)
    return AppError(
        ErrorCode.STORE_UNAVAILABLE,
        "The ledger store is unavailable. Please try again.",
        503,
    )


class LedgerStore:
    """Transactional relational store backed by a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ── Reads ──────────────────────────────────────────────────────────────

    def get(self, model: type, ident: Any):
        """Primary-key lookup. Returns None when the row does not exist."""
        try:
            return self.session.get(model, ident)
        except _TRANSPORT_ERRORS as exc:
            self.session.rollback()
            raise _unavailable(exc) from exc

    def all(self, statement) -> list:
        """Runs a SELECT and returns the first column of every row."""
        return list(self.execute(statement).scalars().all())

    def one_or_none(self, statement):
        return self.execute(statement).scalar_one_or_none()

    def scalar(self, statement):
        return self.execute(statement).scalar_one()

    # ── Single statement ───────────────────────────────────────────────────

    def execute(self, statement):
        """
        Runs one statement and returns its Result.

        INSERT / UPDATE / DELETE statements are committed before returning.
        Use write() instead when the affected row count matters.
        """
        result, _ = self._run(statement)
        return result

    def write(self, statement) -> int:
        """Runs and commits one DML statement; returns the affected row count."""
        _, rowcount = self._run(statement)
        return rowcount

    def _run(self, statement):
        try:
            result = self.session.execute(statement)
            rowcount = -1
            if getattr(statement, "is_dml", False):
                # Read before commit: the cursor is released on commit.
                rowcount = result.rowcount
                self.session.commit()
            return result, rowcount
        except _TRANSPORT_ERRORS as exc:
            self.session.rollback()
            raise _unavailable(exc) from exc
        except SQLAlchemyError:
            self.session.rollback()
            raise

    # ── Atomic batch ───────────────────────────────────────────────────────

    def batch(self, statements: Iterable, mode: str = "write") -> None:
        """
        Applies `statements` in order as a single atomic unit.

        `mode` ("read" | "write") states the caller's intent for routing and
        logging only; atomicity is identical for both.

        A statement wrapped in Guarded aborts the batch when it affects no
        rows.

        Raises:
            ValueError                    -- unknown mode.
            AppError(STORE_UNAVAILABLE)   -- transport failure; nothing applied.
            AppError (Guarded.error)      -- a guarded statement matched no
                                             rows; nothing applied.
        """
        if mode not in BATCH_MODES:
            raise ValueError(f"Unknown batch mode {mode!r}; expected one of {BATCH_MODES}.")

        statements = list(statements)
        logger.debug("Ledger batch: mode=%s statements=%d", mode, len(statements))

        try:
            for statement in statements:
                if isinstance(statement, Guarded):
                    result = self.session.execute(statement.statement)
                    if result.rowcount == 0:
                        self.session.rollback()
                        raise statement.error
                else:
                    self.session.execute(statement)
            self.session.commit()
        except _TRANSPORT_ERRORS as exc:
            self.session.rollback()
            raise _unavailable(exc) from exc
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Ledger batch rolled back")
            raise
