"""Tests for hydra.timeline: the per-session turn store and its events."""

from __future__ import annotations

import pytest

from hydra.schemas.messages import Attachment, AttachmentKind, Role, TurnState
from hydra.schemas.streaming import CompletedEvent, FailedEvent, TokenEvent
from hydra.timeline.events import ChangeType, TimelineChange, TimelineEmitter
from hydra.timeline.store import TimelineStore


def _make_store() -> TimelineStore:
    return TimelineStore("session-1")


def _recording(store: TimelineStore) -> list[TimelineChange]:
    changes: list[TimelineChange] = []
    store.add_listener(changes.append)
    return changes


# ── Appends ──────────────────────────────────────────────────────


class TestAppend:
    def test_user_turn_is_complete(self):
        store = _make_store()
        attachment = Attachment(name="notes.txt", kind=AttachmentKind.FILE, payload="x")
        turn = store.append_user("hello", [attachment])
        assert turn.role == Role.USER
        assert turn.state == TurnState.COMPLETE
        assert turn.attachments == (attachment,)
        assert store.turns == (turn,)

    def test_pending_assistant_is_in_flight(self):
        store = _make_store()
        store.append_user("hi")
        turn = store.append_pending_assistant("m1")
        assert turn.state == TurnState.PENDING
        assert turn.model == "m1"
        assert store.in_flight == turn
        assert store.is_streaming

    def test_second_pending_assistant_rejected(self):
        """Only one turn may be in flight at a time."""
        store = _make_store()
        store.append_pending_assistant("m1")
        with pytest.raises(ValueError):
            store.append_pending_assistant("m1")
        assert len(store) == 1

    def test_system_turn(self):
        store = _make_store()
        turn = store.append_system("be terse")
        assert turn.role == Role.SYSTEM
        assert not store.is_streaming

    def test_order_preserved(self):
        store = _make_store()
        first = store.append_user("one")
        second = store.append_user("two")
        third = store.append_system("three")
        assert [t.id for t in store.turns] == [first.id, second.id, third.id]

    def test_snapshot_is_independent(self):
        store = _make_store()
        store.append_user("one")
        snapshot = store.turns
        store.append_user("two")
        assert len(snapshot) == 1
        assert len(store.turns) == 2


# ── Events ───────────────────────────────────────────────────────


class TestApplyEvent:
    def test_tokens_replace_turn_in_place(self):
        store = _make_store()
        store.append_user("hi")
        pending = store.append_pending_assistant("m1")
        store.apply_event(pending.id, TokenEvent(text="He"))
        store.apply_event(pending.id, TokenEvent(text="llo"))

        turn = store.get(pending.id)
        assert turn.text == "Hello"
        assert turn.state == TurnState.STREAMING
        assert store.turns[1].id == pending.id
        assert len(store) == 2

    def test_completion_clears_in_flight(self):
        store = _make_store()
        pending = store.append_pending_assistant("m0")
        store.apply_event(pending.id, TokenEvent(text="ok"))
        turn = store.apply_event(pending.id, CompletedEvent(model="m1"))
        assert turn.state == TurnState.COMPLETE
        assert turn.model == "m1"
        assert store.in_flight is None
        assert not store.is_streaming

    def test_failure_clears_in_flight(self):
        store = _make_store()
        pending = store.append_pending_assistant("m0")
        turn = store.apply_event(pending.id, FailedEvent(reason="boom"))
        assert turn.state == TurnState.ERROR
        assert turn.text == "Error: boom"
        assert store.in_flight is None

    def test_events_after_terminal_are_ignored(self):
        store = _make_store()
        pending = store.append_pending_assistant("m0")
        done = store.apply_event(pending.id, CompletedEvent())
        changes = _recording(store)
        assert store.apply_event(pending.id, TokenEvent(text="late")) is done
        assert changes == []

    def test_unknown_turn_returns_none(self):
        store = _make_store()
        assert store.apply_event("missing", TokenEvent(text="x")) is None

    def test_completion_refreshes_updated_at(self):
        store = _make_store()
        pending = store.append_pending_assistant("m0")
        before = store.updated_at
        store.apply_event(pending.id, CompletedEvent())
        assert store.updated_at >= before


# ── Clear ────────────────────────────────────────────────────────


class TestClear:
    def test_clear_removes_everything(self):
        store = _make_store()
        store.append_user("hi")
        pending = store.append_pending_assistant("m1")
        store.clear()
        assert store.turns == ()
        assert store.in_flight is None
        assert store.get(pending.id) is None

    def test_late_event_after_clear_is_dropped(self):
        store = _make_store()
        pending = store.append_pending_assistant("m1")
        store.clear()
        assert store.apply_event(pending.id, TokenEvent(text="late")) is None
        assert store.turns == ()

    def test_append_after_clear(self):
        store = _make_store()
        store.append_pending_assistant("m1")
        store.clear()
        store.append_pending_assistant("m1")
        assert len(store) == 1


# ── Listeners ────────────────────────────────────────────────────


class TestListeners:
    def test_change_sequence(self):
        store = _make_store()
        changes = _recording(store)
        store.append_user("hi")
        pending = store.append_pending_assistant("m1")
        store.apply_event(pending.id, TokenEvent(text="a"))
        store.clear()

        assert [c.type for c in changes] == [
            ChangeType.TURN_APPENDED,
            ChangeType.TURN_APPENDED,
            ChangeType.TURN_UPDATED,
            ChangeType.TIMELINE_CLEARED,
        ]
        assert changes[2].turn.text == "a"
        assert changes[2].index == 1
        assert all(c.session_id == "session-1" for c in changes)

    def test_listener_sees_committed_state(self):
        store = _make_store()
        seen = []
        store.add_listener(lambda change: seen.append(store.get(change.turn.id)))
        turn = store.append_user("hi")
        assert seen == [turn]

    def test_remove_listener(self):
        store = _make_store()
        changes = _recording(store)
        store.remove_listener(changes.append)
        store.append_user("hi")
        assert changes == []

    def test_listener_error_does_not_propagate(self):
        store = _make_store()

        def broken(change):
            raise RuntimeError("display crashed")

        store.add_listener(broken)
        changes = _recording(store)
        store.append_user("hi")
        assert len(changes) == 1
        assert len(store) == 1


class TestTimelineEmitter:
    def test_emits_to_all_listeners(self):
        emitter = TimelineEmitter()
        first, second = [], []
        emitter.add_listener(first.append)
        emitter.add_listener(second.append)
        change = TimelineChange(type=ChangeType.TIMELINE_CLEARED, session_id="s")
        emitter.emit(change)
        assert first == [change]
        assert second == [change]
