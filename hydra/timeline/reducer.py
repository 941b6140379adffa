"""Turn reducer: applies one stream event to one assistant turn.

The reducer is a pure function. It never mutates its input; it returns
either an updated copy or, for turns already in a terminal state, the
very same object. Late or duplicate events are therefore harmless.
"""

from __future__ import annotations

from typing import assert_never

from hydra.schemas.messages import Turn, TurnState
from hydra.schemas.streaming import CompletedEvent, FailedEvent, StreamEvent, TokenEvent


def failure_text(reason: str) -> str:
    """Diagnostic text shown in place of assistant output on failure."""
    return f"Error: {reason}" if reason else "Error: request failed"


def reduce(turn: Turn, event: StreamEvent) -> Turn:
    """Return the turn that results from applying ``event`` to ``turn``.

    Args:
        turn: The assistant turn the event belongs to.
        event: A TokenEvent, CompletedEvent, or FailedEvent.

    Returns:
        The updated turn, or ``turn`` itself if it is already complete
        or in error.
    """
    if not turn.is_in_flight:
        return turn

    if isinstance(event, TokenEvent):
        return turn.model_copy(
            update={"text": turn.text + event.text, "state": TurnState.STREAMING}
        )
    if isinstance(event, CompletedEvent):
        return turn.model_copy(
            update={
                "state": TurnState.COMPLETE,
                "model": event.model if event.model is not None else turn.model,
            }
        )
    if isinstance(event, FailedEvent):
        return turn.model_copy(
            update={"state": TurnState.ERROR, "text": failure_text(event.reason)}
        )
    assert_never(event)
