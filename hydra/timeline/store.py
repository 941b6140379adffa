"""Timeline store: the ordered turns of one chat session.

Turns are appended in order and replaced in place by id; nothing is ever
reordered. The store keeps an id -> index map so replacing the in-flight
assistant turn on every token is O(1). Readers get tuple snapshots, so a
display layer can iterate while a stream keeps writing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from hydra.schemas.messages import Attachment, Role, Turn, TurnState
from hydra.schemas.streaming import StreamEvent
from hydra.timeline.events import ChangeListener, ChangeType, TimelineChange, TimelineEmitter
from hydra.timeline.reducer import reduce

logger = logging.getLogger(__name__)


class TimelineStore:
    """Ordered, append-only sequence of turns for a single session.

    Invariant: at most one turn is in flight (pending or streaming). The
    stream controller checks ``in_flight`` before starting new work.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._turns: list[Turn] = []
        self._index: dict[str, int] = {}
        self._in_flight_id: str | None = None
        self._emitter = TimelineEmitter()
        self.updated_at: datetime = datetime.now(UTC)

    # ── Reads ────────────────────────────────────────────────

    @property
    def turns(self) -> tuple[Turn, ...]:
        """Snapshot of the turns in timeline order."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def get(self, turn_id: str) -> Turn | None:
        """Return the turn with ``turn_id``, or None."""
        position = self._index.get(turn_id)
        return self._turns[position] if position is not None else None

    @property
    def in_flight(self) -> Turn | None:
        """The pending or streaming turn, if there is one."""
        if self._in_flight_id is None:
            return None
        return self.get(self._in_flight_id)

    @property
    def is_streaming(self) -> bool:
        return self._in_flight_id is not None

    # ── Listeners ────────────────────────────────────────────

    def add_listener(self, listener: ChangeListener) -> None:
        self._emitter.add_listener(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        self._emitter.remove_listener(listener)

    # ── Mutations ────────────────────────────────────────────

    def append_user(self, text: str, attachments: Iterable[Attachment] = ()) -> Turn:
        """Append a completed user turn."""
        turn = Turn(
            role=Role.USER,
            text=text,
            attachments=tuple(attachments),
            state=TurnState.COMPLETE,
        )
        return self._append(turn)

    def append_system(self, text: str) -> Turn:
        """Append a completed system turn."""
        return self._append(Turn(role=Role.SYSTEM, text=text, state=TurnState.COMPLETE))

    def append_pending_assistant(self, model: str | None) -> Turn:
        """Append an empty assistant turn awaiting its first token.

        Raises:
            ValueError: If another turn is already in flight.
        """
        if self._in_flight_id is not None:
            raise ValueError(
                f"Timeline {self.session_id} already has turn {self._in_flight_id} in flight"
            )
        turn = Turn(role=Role.ASSISTANT, model=model, state=TurnState.PENDING)
        self._in_flight_id = turn.id
        return self._append(turn)

    def apply_event(self, turn_id: str, event: StreamEvent) -> Turn | None:
        """Reduce ``event`` into the turn with ``turn_id`` and store the result.

        Events for a turn that no longer exists (the timeline was cleared)
        are dropped and None is returned.
        """
        position = self._index.get(turn_id)
        if position is None:
            logger.debug("Dropping %s event for unknown turn %s", event.kind, turn_id)
            return None

        current = self._turns[position]
        updated = reduce(current, event)
        if updated is current:
            return current

        self._turns[position] = updated
        if not updated.is_in_flight:
            if self._in_flight_id == turn_id:
                self._in_flight_id = None
            self.updated_at = datetime.now(UTC)

        self._emitter.emit(
            TimelineChange(
                type=ChangeType.TURN_UPDATED,
                session_id=self.session_id,
                turn=updated,
                index=position,
            )
        )
        return updated

    def clear(self) -> None:
        """Remove every turn.

        Callers must cancel any active stream for this session first; its
        late events would otherwise be dropped here anyway.
        """
        self._turns = []
        self._index = {}
        self._in_flight_id = None
        self.updated_at = datetime.now(UTC)
        self._emitter.emit(
            TimelineChange(type=ChangeType.TIMELINE_CLEARED, session_id=self.session_id)
        )

    def _append(self, turn: Turn) -> Turn:
        self._index[turn.id] = len(self._turns)
        self._turns.append(turn)
        self.updated_at = datetime.now(UTC)
        self._emitter.emit(
            TimelineChange(
                type=ChangeType.TURN_APPENDED,
                session_id=self.session_id,
                turn=turn,
                index=self._index[turn.id],
            )
        )
        return turn
