"""
Unit tests for services/guard.py: creator rules, removal rules and quotas.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.services import guard

_GROUP = SimpleNamespace(id="g1", created_by="alice")


def _profile(user_id="alice", max_groups=10, max_members=15):
    return SimpleNamespace(
        id=user_id,
        max_groups=max_groups,
        max_members_per_group=max_members,
    )


class TestRemoveMember:

    def test_creator_removing_themselves(self):
        with pytest.raises(AppError) as exc_info:
            guard.check_remove_member(_GROUP, "alice", "alice")
        assert exc_info.value.code == ErrorCode.CANNOT_REMOVE_SELF
        assert exc_info.value.http_status == 422

    def test_self_removal_is_checked_before_creator_rule(self):
        with pytest.raises(AppError) as exc_info:
            guard.check_remove_member(_GROUP, "bob", "bob")
        assert exc_info.value.code == ErrorCode.CANNOT_REMOVE_SELF

    def test_non_creator(self):
        with pytest.raises(AppError) as exc_info:
            guard.check_remove_member(_GROUP, "bob", "carol")
        assert exc_info.value.code == ErrorCode.FORBIDDEN

    def test_creator_removing_someone_else(self):
        guard.check_remove_member(_GROUP, "alice", "bob")


class TestExpenseEditor:

    def test_recorder_and_creator_allowed(self):
        expense = SimpleNamespace(created_by="bob")
        guard.require_expense_editor(expense, _GROUP, "bob")
        guard.require_expense_editor(expense, _GROUP, "alice")

    def test_payer_alone_is_not_enough(self):
        expense = SimpleNamespace(created_by="bob", payer_id="carol")
        with pytest.raises(AppError) as exc_info:
            guard.require_expense_editor(expense, _GROUP, "carol")
        assert exc_info.value.code == ErrorCode.FORBIDDEN


class TestQuotas:

    def test_group_quota_reached(self):
        store = MagicMock()
        store.scalar.return_value = 10

        with pytest.raises(AppError) as exc_info:
            guard.check_group_quota(_profile(max_groups=10), store)

        assert exc_info.value.code == ErrorCode.GROUP_LIMIT_EXCEEDED
        assert exc_info.value.http_status == 422

    def test_group_quota_below_limit(self):
        store = MagicMock()
        store.scalar.return_value = 9
        guard.check_group_quota(_profile(max_groups=10), store)

    def test_member_quota_reads_the_creators_limit(self):
        store = MagicMock()
        store.get.return_value = _profile("alice", max_members=3)
        store.scalar.return_value = 3

        with pytest.raises(AppError) as exc_info:
            guard.check_member_quota(_GROUP, store)

        assert exc_info.value.code == ErrorCode.MEMBER_LIMIT_EXCEEDED
        assert store.get.call_args.args[1] == "alice"

    def test_member_quota_with_room(self):
        store = MagicMock()
        store.get.return_value = _profile("alice", max_members=3)
        store.scalar.return_value = 2
        guard.check_member_quota(_GROUP, store)


class TestLookups:

    def test_missing_profile(self):
        store = MagicMock()
        store.get.return_value = None
        with pytest.raises(AppError) as exc_info:
            guard.require_profile("ghost", store)
        assert exc_info.value.code == ErrorCode.PROFILE_NOT_FOUND

    def test_require_member(self):
        store = MagicMock()
        store.one_or_none.return_value = None
        with pytest.raises(AppError) as exc_info:
            guard.require_member("g1", "mallory", store)
        assert exc_info.value.http_status == 403
