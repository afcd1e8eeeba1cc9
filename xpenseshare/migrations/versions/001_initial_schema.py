"""Initial schema — all tables, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-17

Creates the Xpense Share ledger: profiles, groups, group_members, expenses,
expense_splits, settlements, invitations and notifications.

Append-only:
  Never edit this file after it has been applied to any database. Schema
  changes go in a new migration.

Enumerated columns (tier, split policy, statuses, notification type) are
VARCHAR(16) with the allowed values checked by SQLAlchemy, so the same
migration runs on PostgreSQL and SQLite.

ON DELETE policies:
  groups.created_by            → RESTRICT
  group_members.group_id       → CASCADE
  expenses.group_id            → CASCADE
  expense_splits.expense_id    → CASCADE
  settlements.group_id         → CASCADE
  invitations.group_id         → CASCADE
  notifications.user_id        → CASCADE
  every other profile FK       → RESTRICT
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _profile_fk(column: str, table: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        column,
        sa.String(64),
        sa.ForeignKey("profiles.id", ondelete="RESTRICT", name=f"fk_{table}_{column}"),
        nullable=nullable,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    """Apply the full initial schema in FK dependency order."""

    # ── Step 1: profiles ──────────────────────────────────────────────────
    # Keyed by the identity provider's user id.

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(1024), nullable=True),
        sa.Column(
            "subscription_tier",
            sa.String(16),
            nullable=False,
            server_default="free",
        ),
        sa.Column("max_groups", sa.Integer(), nullable=False, server_default="10"),
        sa.Column(
            "max_members_per_group",
            sa.Integer(),
            nullable=False,
            server_default="15",
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
    )

    # ── Step 2: groups ────────────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("icon_url", sa.String(1024), nullable=True),
        _profile_fk("created_by", "groups"),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    # ── Step 3: group_members ─────────────────────────────────────────────

    op.create_table(
        "group_members",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "group_id",
            sa.String(32),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_group_members_group"),
            nullable=False,
        ),
        _profile_fk("user_id", "group_members"),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_group_members"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )

    # ── Step 4: expenses ──────────────────────────────────────────────────

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "group_id",
            sa.String(32),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_expenses_group"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        _profile_fk("payer_id", "expenses"),
        _profile_fk("created_by", "expenses"),
        sa.Column(
            "split_policy",
            sa.String(16),
            nullable=False,
            server_default="equal",
        ),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        sa.CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_expenses_description_nonempty",
        ),
    )

    # ── Step 5: expense_splits ────────────────────────────────────────────
    # amount_owed keeps six decimal places for equal shares.

    op.create_table(
        "expense_splits",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "expense_id",
            sa.String(32),
            sa.ForeignKey("expenses.id", ondelete="CASCADE", name="fk_expense_splits_expense"),
            nullable=False,
        ),
        _profile_fk("user_id", "expense_splits"),
        sa.Column("amount_owed", sa.Numeric(18, 6), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_expense_splits"),
        sa.UniqueConstraint("expense_id", "user_id", name="uq_expense_splits_expense_user"),
        sa.CheckConstraint("amount_owed >= 0", name="ck_expense_splits_amount_nonnegative"),
    )

    # ── Step 6: settlements ───────────────────────────────────────────────

    op.create_table(
        "settlements",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "group_id",
            sa.String(32),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_settlements_group"),
            nullable=False,
        ),
        _profile_fk("sender_id", "settlements"),
        _profile_fk("receiver_id", "settlements"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        _created_at(),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _profile_fk("resolved_by", "settlements", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_settlements"),
        sa.CheckConstraint("amount > 0", name="ck_settlements_amount_positive"),
        sa.CheckConstraint(
            "sender_id <> receiver_id",
            name="ck_settlements_no_self_settlement",
        ),
    )

    # ── Step 7: invitations ───────────────────────────────────────────────

    op.create_table(
        "invitations",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "group_id",
            sa.String(32),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_invitations_group"),
            nullable=False,
        ),
        _profile_fk("inviter_id", "invitations"),
        _profile_fk("invitee_id", "invitations"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_invitations"),
    )

    # ── Step 8: notifications ─────────────────────────────────────────────
    # reference_id targets an invitation or an expense, so it carries no FK.

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE", name="fk_notifications_user"),
            nullable=False,
        ),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("reference_id", sa.String(32), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
    )

    # ── Step 9: Indexes ───────────────────────────────────────────────────
    # Names follow SQLAlchemy's ix_<table>_<column> so autogenerate agrees.

    op.create_index("ix_profiles_email", "profiles", ["email"])
    op.create_index("ix_groups_created_by", "groups", ["created_by"])
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])
    op.create_index("ix_expenses_group_id", "expenses", ["group_id"])
    op.create_index("ix_expenses_payer_id", "expenses", ["payer_id"])
    op.create_index("ix_expense_splits_expense_id", "expense_splits", ["expense_id"])
    op.create_index("ix_expense_splits_user_id", "expense_splits", ["user_id"])
    op.create_index("ix_settlements_group_id", "settlements", ["group_id"])
    op.create_index("ix_settlements_sender_id", "settlements", ["sender_id"])
    op.create_index("ix_settlements_receiver_id", "settlements", ["receiver_id"])
    op.create_index("ix_invitations_group_id", "invitations", ["group_id"])
    op.create_index("ix_invitations_invitee_id", "invitations", ["invitee_id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_reference_id", "notifications", ["reference_id"])


def downgrade() -> None:
    """Drop everything created in upgrade(), in reverse dependency order."""

    op.drop_index("ix_notifications_reference_id", table_name="notifications")
    op.drop_index("ix_notifications_user_id",      table_name="notifications")
    op.drop_index("ix_invitations_invitee_id",     table_name="invitations")
    op.drop_index("ix_invitations_group_id",       table_name="invitations")
    op.drop_index("ix_settlements_receiver_id",    table_name="settlements")
    op.drop_index("ix_settlements_sender_id",      table_name="settlements")
    op.drop_index("ix_settlements_group_id",       table_name="settlements")
    op.drop_index("ix_expense_splits_user_id",     table_name="expense_splits")
    op.drop_index("ix_expense_splits_expense_id",  table_name="expense_splits")
    op.drop_index("ix_expenses_payer_id",          table_name="expenses")
    op.drop_index("ix_expenses_group_id",          table_name="expenses")
    op.drop_index("ix_group_members_user_id",      table_name="group_members")
    op.drop_index("ix_group_members_group_id",     table_name="group_members")
    op.drop_index("ix_groups_created_by",          table_name="groups")
    op.drop_index("ix_profiles_email",             table_name="profiles")

    op.drop_table("notifications")
    op.drop_table("invitations")
    op.drop_table("settlements")
    op.drop_table("expense_splits")
    op.drop_table("expenses")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("profiles")
