"""Tests for hydra.schemas: frames, events, turns, and the request body."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from hydra.schemas.config import HealthStatus, ProviderInfo
from hydra.schemas.messages import (
    Attachment,
    AttachmentKind,
    ChatRequest,
    Role,
    Turn,
    TurnState,
    WireMessage,
)
from hydra.schemas.streaming import (
    CompletedEvent,
    EventKind,
    FailedEvent,
    Frame,
    StreamEvent,
    TokenEvent,
)

# ── Frame ─────────────────────────────────────────────────────────


class TestFrame:
    def test_defaults(self):
        frame = Frame.model_validate({})
        assert frame.token == ""
        assert frame.done is False
        assert frame.model is None
        assert frame.total_tokens is None

    def test_unknown_keys_ignored(self):
        frame = Frame.model_validate({"token": "a", "done": False, "extra": 1})
        assert frame.token == "a"

    @pytest.mark.parametrize("count", [-1, 2.5, "many", True, [3], {"n": 1}])
    def test_unusable_total_tokens_ignored(self, count):
        """A bad token count never rejects the terminal frame."""
        frame = Frame.model_validate({"done": True, "total_tokens": count})
        assert frame.done is True
        assert frame.total_tokens is None

    def test_integral_float_total_tokens_accepted(self):
        assert Frame.model_validate({"done": True, "totalTokens": 12.0}).total_tokens == 12


# ── Events ────────────────────────────────────────────────────────


class TestStreamEvent:
    def test_kinds(self):
        assert TokenEvent(text="a").kind == EventKind.TOKEN
        assert CompletedEvent().kind == EventKind.COMPLETED
        assert FailedEvent(reason="x").kind == EventKind.FAILED

    def test_discriminated_union(self):
        adapter = TypeAdapter(StreamEvent)
        event = adapter.validate_python({"kind": "failed", "reason": "boom"})
        assert isinstance(event, FailedEvent)
        assert event.reason == "boom"

    def test_events_are_frozen(self):
        event = TokenEvent(text="a")
        with pytest.raises(ValidationError):
            event.text = "b"


# ── Turn ──────────────────────────────────────────────────────────


class TestTurn:
    def test_defaults(self):
        turn = Turn(role=Role.USER, text="hi")
        assert turn.state == TurnState.COMPLETE
        assert turn.attachments == ()
        assert turn.created_at.tzinfo is not None
        assert len(turn.id) == 36

    def test_ids_unique(self):
        assert Turn(role=Role.USER).id != Turn(role=Role.USER).id

    @pytest.mark.parametrize(
        ("state", "in_flight"),
        [
            (TurnState.PENDING, True),
            (TurnState.STREAMING, True),
            (TurnState.COMPLETE, False),
            (TurnState.ERROR, False),
        ],
    )
    def test_in_flight(self, state, in_flight):
        assert Turn(role=Role.ASSISTANT, state=state).is_in_flight is in_flight

    def test_attachments_keep_order(self):
        files = [
            Attachment(name="b.txt", kind=AttachmentKind.FILE),
            Attachment(name="a.png", kind=AttachmentKind.IMAGE, mime_type="image/png"),
        ]
        turn = Turn(role=Role.USER, attachments=files)
        assert [a.name for a in turn.attachments] == ["b.txt", "a.png"]


# ── ChatRequest ───────────────────────────────────────────────────


class TestChatRequest:
    def test_to_wire_omits_unset_optionals(self):
        request = ChatRequest(
            model="m1", messages=[WireMessage(role=Role.USER, content="hi")],
        )
        assert request.to_wire() == {
            "model": "m1",
            "messages": [{"role": "user", "content": "hi"}],
            "max_tokens": 4096,
            "stream": True,
        }

    def test_to_wire_includes_system_and_temperature(self):
        request = ChatRequest(
            model="m1", messages=[], system="be brief", temperature=0.5,
        )
        wire = request.to_wire()
        assert wire["system"] == "be brief"
        assert wire["temperature"] == 0.5

    def test_max_tokens_must_be_positive(self):
        with pytest.raises(ValidationError):
            ChatRequest(model="m1", messages=[], max_tokens=0)


# ── HealthStatus ──────────────────────────────────────────────────


class TestHealthStatus:
    def test_default_is_unreachable(self):
        status = HealthStatus()
        assert not status.reachable
        assert not status.is_available("anthropic")

    def test_provider_availability(self):
        status = HealthStatus(
            status="ok",
            version="1.2.0",
            providers=[
                ProviderInfo(name="anthropic", available=True),
                ProviderInfo(name="google", available=False),
            ],
        )
        assert status.reachable
        assert status.is_available("anthropic")
        assert not status.is_available("google")
        assert not status.is_available("openai")
