"""Timeline change events for display layers.

Every mutation of a TimelineStore is announced as a TimelineChange to the
store's registered listeners. Listeners run synchronously, after the
mutation has fully completed, so they never observe a half-applied change.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from hydra.schemas.messages import Turn

logger = logging.getLogger(__name__)


class ChangeType(StrEnum):
    """Kinds of timeline mutation."""

    TURN_APPENDED = "turn_appended"
    TURN_UPDATED = "turn_updated"
    TIMELINE_CLEARED = "timeline_cleared"


class TimelineChange(BaseModel):
    """A single timeline mutation."""

    type: ChangeType = Field(description="Mutation type")
    session_id: str = Field(description="Session whose timeline changed")
    turn: Turn | None = Field(
        default=None, description="The appended or updated turn (None on clear)",
    )
    index: int | None = Field(
        default=None, description="Position of the turn in the timeline",
    )
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the change happened",
    )


# Type alias for change listener callbacks
ChangeListener = Callable[[TimelineChange], Any]


class TimelineEmitter:
    """Broadcasts timeline changes to registered listeners.

    Listener exceptions are logged but never propagate into the store or
    the stream loop that triggered the change.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a listener to receive timeline changes."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        """Remove a previously registered listener."""
        # Equality, not identity: bound methods are recreated on each access.
        self._listeners = [ln for ln in self._listeners if ln != listener]

    def emit(self, change: TimelineChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Timeline listener error for %s", change.type)
