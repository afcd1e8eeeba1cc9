"""
Unit tests for invitation_service.respond_to_invitation: the decision batch
and its guard against concurrent decisions.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from xpenseshare.app.errors import AppError, ErrorCode
from xpenseshare.app.models.group import Group
from xpenseshare.app.models.invitation import Invitation, InvitationStatus
from xpenseshare.app.models.profile import Profile
from xpenseshare.app.services import invitation_service
from xpenseshare.app.store import Guarded

_GROUP = SimpleNamespace(id="g1", name="Flat", created_by="alice")
_ALICE = SimpleNamespace(id="alice", max_members_per_group=15)


def _store(status=InvitationStatus.PENDING, member_count=1):
    invitation = SimpleNamespace(
        id="i1", group_id="g1", invitee_id="bob", status=status,
    )
    rows = {Invitation: invitation, Group: _GROUP, Profile: _ALICE}
    store = MagicMock()
    store.get.side_effect = lambda model, ident: rows.get(model)
    store.one_or_none.return_value = None
    store.scalar.return_value = member_count
    return store


def _batched(store) -> list:
    store.batch.assert_called_once()
    return store.batch.call_args.args[0]


class TestDecisionBatch:

    def test_accept_guards_the_status_update_before_joining(self):
        store = _store()

        invitation_service.respond_to_invitation("i1", "bob", "accepted", store)

        statements = _batched(store)
        guarded = statements[0]
        assert isinstance(guarded, Guarded)
        assert guarded.error.code == ErrorCode.INVALID_TRANSITION
        assert guarded.error.http_status == 409
        assert guarded.statement.compile().params["status"] == InvitationStatus.ACCEPTED
        assert [s.table.name for s in statements[1:]] == ["group_members", "notifications"]

    def test_reject_never_inserts_a_membership(self):
        store = _store()

        invitation_service.respond_to_invitation("i1", "bob", "rejected", store)

        statements = _batched(store)
        assert isinstance(statements[0], Guarded)
        assert [s.table.name for s in statements[1:]] == ["notifications"]

    def test_concurrent_decision_surfaces_as_invalid_transition(self):
        store = _store()
        store.batch.side_effect = AppError(
            ErrorCode.INVALID_TRANSITION, "already decided", 409
        )

        with pytest.raises(AppError) as exc_info:
            invitation_service.respond_to_invitation("i1", "bob", "accepted", store)

        assert exc_info.value.code == ErrorCode.INVALID_TRANSITION


class TestPreconditions:

    def test_already_decided(self):
        store = _store(status=InvitationStatus.REJECTED)

        with pytest.raises(AppError) as exc_info:
            invitation_service.respond_to_invitation("i1", "bob", "accepted", store)

        assert exc_info.value.code == ErrorCode.INVALID_TRANSITION
        store.batch.assert_not_called()

    def test_full_group_writes_nothing(self):
        store = _store(member_count=15)

        with pytest.raises(AppError) as exc_info:
            invitation_service.respond_to_invitation("i1", "bob", "accepted", store)

        assert exc_info.value.code == ErrorCode.MEMBER_LIMIT_EXCEEDED
        store.batch.assert_not_called()

    def test_addressed_to_someone_else(self):
        store = _store()

        with pytest.raises(AppError) as exc_info:
            invitation_service.respond_to_invitation("i1", "carol", "accepted", store)

        assert exc_info.value.code == ErrorCode.INVITATION_NOT_FOUND
