"""Tests for the attention set engine facade."""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from attnset_core.engine import AttentionSetEngine
from attnset_core.errors import ConflictError, InvalidTargetError, RobotTargetError
from attnset_core.events import (
    AttentionSetInput,
    Instructions,
    ManualUpdate,
    Replied,
    ReviewerAdded,
    StatusChanged,
    VoteDeleted,
)
from attnset_core.models import ChangeContext, ChangeStatus, Operation
from attnset_core.threads import Comment, CommentIndex
from attnset_store.base import StoreError
from attnset_store.memory import MemoryStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class _Clock:
    """Returns the given times in order, then repeats the last one."""

    def __init__(self, *times):
        self._times = list(times) or [T0]

    def __call__(self):
        if len(self._times) > 1:
            return self._times.pop(0)
        return self._times[0]


def _ctx(**overrides):
    fields = dict(change_id="c1", owner="owner", uploaders=frozenset({"owner"}), reviewers=frozenset({"u"}))
    fields.update(overrides)
    return ChangeContext(**fields)


def _summary(updates):
    return [(u.account, u.operation, u.reason) for u in updates]


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(store):
    return AttentionSetEngine(store, clock=_Clock())


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_owner_reply_leaves_reviewer_alone(self, engine):
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        assert engine.decide_and_apply(Replied("owner"), _ctx()) == []
        assert engine.current_members("c1") == {"u"}

    def test_deleted_vote_brings_reviewer_back(self, engine):
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        engine.decide_and_apply(Replied("u"), _ctx())
        assert engine.current_members("c1") == {"owner"}

        batch = engine.decide_and_apply(VoteDeleted("owner", "u", label="Code-Review"), _ctx())
        assert _summary(batch) == [("u", Operation.ADD, "Their vote was deleted")]

    def test_deleted_vote_of_attending_reviewer_is_noop(self, engine):
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        assert engine.decide_and_apply(VoteDeleted("owner", "u"), _ctx()) == []

    def test_reviewer_added_while_wip_then_ready(self, engine):
        wip = _ctx(status=ChangeStatus.WORK_IN_PROGRESS)
        assert engine.decide_and_apply(ReviewerAdded("owner", "u"), wip) == []

        event = StatusChanged("owner", ChangeStatus.READY_FOR_REVIEW, previous=ChangeStatus.WORK_IN_PROGRESS)
        batch = engine.decide_and_apply(event, _ctx())
        assert _summary(batch) == [("u", Operation.ADD, "Change was marked ready for review")]

    def test_reply_to_sibling_branch(self, engine):
        comments = CommentIndex(
            [
                Comment("root", "u1"),
                Comment("c2", "u2", parent="root"),
                Comment("c3", "u3", parent="root"),
                Comment("c4", "u4", parent="c3"),
            ]
        )
        ctx = _ctx(reviewers=frozenset({"u1", "u2", "u3", "u4"}), comments=comments)
        batch = engine.decide_and_apply(Replied("owner", comment_refs=("c2",)), ctx)
        assert {u.account for u in batch} == {"u1", "u2"}


# ---------------------------------------------------------------------------
# Log behaviour
# ---------------------------------------------------------------------------


class TestLog:
    def test_batch_is_appended_to_store(self, engine, store):
        batch = engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        assert store.list_updates("c1") == batch
        assert engine.history("c1") == batch

    def test_repeated_event_is_idempotent(self, engine, store):
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        assert engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx()) == []
        assert len(store.list_updates("c1")) == 1

    def test_attention_set_in_context_is_ignored(self, engine):
        stale = _ctx(attention_set=frozenset({"u"}))
        batch = engine.decide_and_apply(ReviewerAdded("owner", "u"), stale)
        assert _summary(batch) == [("u", Operation.ADD, "Reviewer was added")]

    def test_close_clears_attention_set(self, engine):
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        engine.decide_and_apply(Replied("u"), _ctx())
        merged = _ctx(status=ChangeStatus.MERGED)
        engine.decide_and_apply(StatusChanged("owner", ChangeStatus.MERGED), merged)
        assert engine.current_members("c1") == frozenset()

    def test_empty_batch_not_written(self):
        store = MagicMock()
        store.list_updates.return_value = []
        engine = AttentionSetEngine(store)
        assert engine.decide_and_apply(Replied("owner"), _ctx()) == []
        store.append.assert_not_called()

    def test_timestamps_never_go_backwards(self, store):
        engine = AttentionSetEngine(store, clock=_Clock(T0 + timedelta(seconds=10), T0))
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        batch = engine.decide_and_apply(Replied("u"), _ctx())
        assert all(u.timestamp == T0 + timedelta(seconds=10) for u in batch)

    def test_timestamps_follow_clock(self, store):
        engine = AttentionSetEngine(store, clock=_Clock(T0, T0 + timedelta(seconds=5)))
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        batch = engine.decide_and_apply(Replied("u"), _ctx())
        assert {u.timestamp for u in batch} == {T0 + timedelta(seconds=5)}


# ---------------------------------------------------------------------------
# Explicit instructions
# ---------------------------------------------------------------------------


class TestExplicitInstructions:
    def test_manual_add(self, engine):
        event = ManualUpdate("u", Instructions(adds=(AttentionSetInput("owner", "please rebase"),)))
        assert _summary(engine.decide_and_apply(event, _ctx())) == [("owner", Operation.ADD, "please rebase")]

    def test_conflict_leaves_log_unchanged(self, engine, store):
        engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        instructions = Instructions(adds=(AttentionSetInput("u", "a"),), removes=(AttentionSetInput("u", "b"),))
        with pytest.raises(ConflictError):
            engine.decide_and_apply(ManualUpdate("owner", instructions), _ctx())
        assert len(store.list_updates("c1")) == 1

    def test_inactive_target_rejected(self, engine, store):
        instructions = Instructions(adds=(AttentionSetInput("stranger", "look"),))
        with pytest.raises(InvalidTargetError):
            engine.decide_and_apply(Replied("u", instructions=instructions), _ctx())
        assert store.list_updates("c1") == []

    def test_robot_target_rejected(self, store):
        engine = AttentionSetEngine.from_config({"service_accounts": ["ci-bot"]}, store)
        ctx = _ctx(reviewers=frozenset({"u", "ci-bot"}))
        instructions = Instructions(adds=(AttentionSetInput("ci-bot", "look"),))
        with pytest.raises(RobotTargetError):
            engine.decide_and_apply(ManualUpdate("owner", instructions), ctx)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfiguration:
    def test_disabled_engine_does_nothing(self):
        store = MagicMock()
        engine = AttentionSetEngine(store, enabled=False)
        assert engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx()) == []
        store.list_updates.assert_not_called()
        store.append.assert_not_called()

    def test_unknown_thread_mode_rejected(self, store):
        with pytest.raises(ValueError, match="thread participant mode"):
            AttentionSetEngine(store, thread_mode="everyone")

    def test_from_config(self, store):
        config = {"enable_attention_set": False, "thread_participants": "thread", "service_accounts": []}
        engine = AttentionSetEngine.from_config(config, store)
        assert engine.enabled is False

    def test_configured_robots_are_not_added(self, store):
        engine = AttentionSetEngine.from_config({"service_account_domains": ["ci.example.com"]}, store)
        ctx = _ctx(reviewers=frozenset({"lint@ci.example.com"}))
        assert engine.decide_and_apply(ReviewerAdded("owner", "lint@ci.example.com"), ctx) == []

    def test_configured_robot_actor_skips_rules(self, store):
        engine = AttentionSetEngine.from_config({"service_accounts": ["ci-bot"]}, store)
        assert engine.decide_and_apply(ReviewerAdded("ci-bot", "u"), _ctx()) == []

    def test_whole_thread_mode_from_config(self, store):
        engine = AttentionSetEngine.from_config({"thread_participants": "thread"}, store)
        comments = CommentIndex([Comment("root", "u1"), Comment("a", "u2", parent="root"), Comment("b", "u3", parent="root")])
        ctx = _ctx(reviewers=frozenset({"u1", "u2", "u3"}), comments=comments)
        batch = engine.decide_and_apply(Replied("owner", comment_refs=("a",)), ctx)
        assert {u.account for u in batch} == {"u1", "u2", "u3"}


# ---------------------------------------------------------------------------
# Listeners and store failures
# ---------------------------------------------------------------------------


class TestListeners:
    def test_listener_called_once_with_batch_and_members(self, store):
        listener = MagicMock()
        engine = AttentionSetEngine(store, listeners=[listener])
        batch = engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        listener.assert_called_once_with("c1", batch, frozenset({"u"}))

    def test_listener_called_for_empty_batch(self, store):
        listener = MagicMock()
        engine = AttentionSetEngine(store)
        engine.add_listener(listener)
        engine.decide_and_apply(Replied("owner"), _ctx())
        listener.assert_called_once_with("c1", [], frozenset())

    def test_failing_listener_does_not_undo_batch(self, store, caplog):
        def broken(change_id, batch, members):
            raise RuntimeError("smtp down")

        after = MagicMock()
        engine = AttentionSetEngine(store, listeners=[broken, after])
        with caplog.at_level(logging.WARNING, logger="attnset_core.engine"):
            engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        assert "smtp down" in caplog.text
        assert len(store.list_updates("c1")) == 1
        after.assert_called_once()

    def test_store_error_propagates(self):
        store = MagicMock()
        store.list_updates.return_value = []
        store.append.side_effect = StoreError("disk full")
        listener = MagicMock()
        engine = AttentionSetEngine(store, listeners=[listener])
        with pytest.raises(StoreError):
            engine.decide_and_apply(ReviewerAdded("owner", "u"), _ctx())
        listener.assert_not_called()
