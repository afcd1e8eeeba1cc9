"""
Unit tests for group_service: add-member outcomes and check order, member
removal, and the single-batch group delete.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.group import Group
from xpenseshare.app.models.profile import Profile
from xpenseshare.app.services import group_service

_GROUP = SimpleNamespace(
    id="g1",
    name="Flat",
    created_by="alice",
    icon_url=None,
)
_ALICE = SimpleNamespace(
    id="alice",
    display_name="Alice",
    max_groups=10,
    max_members_per_group=15,
)
_BOB = SimpleNamespace(id="bob", display_name="Bob")


def _store(member_count=1, lookups=()):
    """
    `lookups` feeds store.one_or_none in call order:
    profile by email, membership, pending invitation.
    """
    store = MagicMock()
    rows = {Group: _GROUP, Profile: _ALICE}
    store.get.side_effect = lambda model, ident: rows.get(model)
    store.scalar.return_value = member_count
    store.one_or_none.side_effect = list(lookups)
    return store


class TestAddMember:

    def test_registered_user_is_invited_in_one_batch(self):
        store = _store(lookups=[_BOB, None, None])
        email_client = MagicMock()

        result = group_service.add_member("g1", "alice", "bob@test.com", store, email_client)

        assert result["outcome"] == group_service.OUTCOME_INVITED_REGISTERED
        assert result["user_id"] == "bob"
        store.batch.assert_called_once()
        statements = store.batch.call_args.args[0]
        assert [s.table.name for s in statements] == ["invitations", "notifications"]
        email_client.send_invite.assert_not_called()

    def test_email_lookup_returns_at_most_the_latest_profile(self):
        store = _store(lookups=[_BOB, None, None])

        group_service.add_member("g1", "alice", " Bob@Test.com ", store, MagicMock())

        sql = str(store.one_or_none.call_args_list[0].args[0])
        assert "lower(profiles.email)" in sql
        assert "ORDER BY profiles.updated_at DESC" in sql
        assert "LIMIT" in sql

    def test_unknown_email_gets_invite_email(self):
        store = _store(lookups=[None])
        email_client = MagicMock()

        result = group_service.add_member("g1", "alice", "new@test.com", store, email_client)

        assert result == {
            "outcome": group_service.OUTCOME_INVITED_EMAIL,
            "email": "new@test.com",
        }
        email_client.send_invite.assert_called_once_with("new@test.com", "Flat", "Alice")
        store.batch.assert_not_called()

    def test_only_creator(self):
        store = _store()

        with pytest.raises(AppError) as exc_info:
            group_service.add_member("g1", "bob", "x@test.com", store, MagicMock())

        assert exc_info.value.code == ErrorCode.FORBIDDEN
        store.one_or_none.assert_not_called()

    def test_already_member(self):
        store = _store(lookups=[_BOB, object()])

        with pytest.raises(AppError) as exc_info:
            group_service.add_member("g1", "alice", "bob@test.com", store, MagicMock())

        assert exc_info.value.code == ErrorCode.ALREADY_MEMBER
        assert exc_info.value.http_status == 409

    def test_duplicate_invite_is_reported_before_the_quota(self):
        store = _store(member_count=15, lookups=[_BOB, None, object()])

        with pytest.raises(AppError) as exc_info:
            group_service.add_member("g1", "alice", "bob@test.com", store, MagicMock())

        assert exc_info.value.code == ErrorCode.DUPLICATE_INVITE
        store.scalar.assert_not_called()

    def test_full_group(self):
        store = _store(member_count=15, lookups=[None])
        email_client = MagicMock()

        with pytest.raises(AppError) as exc_info:
            group_service.add_member("g1", "alice", "new@test.com", store, email_client)

        assert exc_info.value.code == ErrorCode.MEMBER_LIMIT_EXCEEDED
        email_client.send_invite.assert_not_called()

    def test_email_failure_propagates(self):
        store = _store(lookups=[None])
        email_client = MagicMock()
        email_client.send_invite.side_effect = AppError(
            ErrorCode.EMAIL_DELIVERY_FAILED, "down", 502
        )

        with pytest.raises(AppError) as exc_info:
            group_service.add_member("g1", "alice", "new@test.com", store, email_client)

        assert exc_info.value.http_status == 502


class TestRemoveMember:

    def test_not_a_member(self):
        store = _store()
        store.write.return_value = 0

        with pytest.raises(AppError) as exc_info:
            group_service.remove_member("g1", "alice", "nobody", store)

        assert exc_info.value.code == ErrorCode.MEMBER_NOT_FOUND

    def test_self_removal_never_reaches_the_store(self):
        store = _store()

        with pytest.raises(AppError) as exc_info:
            group_service.remove_member("g1", "alice", "alice", store)

        assert exc_info.value.code == ErrorCode.CANNOT_REMOVE_SELF
        store.write.assert_not_called()


class TestDeleteGroup:

    def test_children_first_in_one_batch(self):
        store = _store()

        group_service.delete_group("g1", "alice", store)

        store.batch.assert_called_once()
        tables = [s.table.name for s in store.batch.call_args.args[0]]
        assert tables == [
            "notifications",
            "expense_splits",
            "expenses",
            "settlements",
            "invitations",
            "group_members",
            "groups",
        ]

    def test_only_creator(self):
        store = _store()
        with pytest.raises(AppError):
            group_service.delete_group("g1", "bob", store)
        store.batch.assert_not_called()


class TestCreateGroup:

    def test_group_quota_blocks_before_any_write(self):
        store = _store(member_count=10)

        with pytest.raises(AppError) as exc_info:
            group_service.create_group("alice", {"name": "New"}, store)

        assert exc_info.value.code == ErrorCode.GROUP_LIMIT_EXCEEDED
        store.batch.assert_not_called()
