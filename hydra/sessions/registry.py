"""Session registry: the set of chat sessions and the active selection.

The registry is constructed explicitly and handed by reference to the
stream controller and UI layers; there is no module-level instance.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from hydra.schemas.messages import Role, Turn
from hydra.schemas.session import SessionSummary
from hydra.timeline.store import TimelineStore

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Chat"
_PREVIEW_CHARS = 100


class Session:
    """A titled chat session owning one timeline."""

    def __init__(self, title: str = DEFAULT_TITLE, session_id: str | None = None) -> None:
        self.id = session_id or str(uuid.uuid4())
        self.title = title
        self.created_at = datetime.now(UTC)
        self.timeline = TimelineStore(self.id)
        self.timeline.updated_at = self.created_at

    @property
    def turns(self) -> tuple[Turn, ...]:
        return self.timeline.turns

    @property
    def updated_at(self) -> datetime:
        """Last turn append or completion (creation time for a new session)."""
        return self.timeline.updated_at

    @property
    def message_count(self) -> int:
        return len(self.timeline)

    @property
    def preview_text(self) -> str:
        """First 100 characters of the first user turn."""
        for turn in self.timeline.turns:
            if turn.role == Role.USER:
                return turn.text[:_PREVIEW_CHARS]
        return ""

    def summary(self) -> SessionSummary:
        return SessionSummary(
            id=self.id,
            title=self.title,
            created_at=self.created_at,
            updated_at=self.updated_at,
            message_count=self.message_count,
            preview=self.preview_text,
        )

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, title={self.title!r}, turns={self.message_count})"


class SessionRegistry:
    """All sessions of one client, plus the active session id.

    Invariant: ``active_session_id`` is None or the id of a session the
    registry holds.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self.active_session_id: str | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    @property
    def active(self) -> Session | None:
        """The active session, if any."""
        if self.active_session_id is None:
            return None
        return self._sessions.get(self.active_session_id)

    def create(self, title: str | None = None) -> Session:
        """Create an empty session, register it, and make it active."""
        title = (title or "").strip() or DEFAULT_TITLE
        session = Session(title=title)
        self._sessions[session.id] = session
        self.active_session_id = session.id
        logger.debug("Created session %s", session.id)
        return session

    def rename(self, session_id: str, title: str) -> bool:
        """Rename a session.

        Empty or whitespace-only titles are ignored, as are unknown ids.

        Returns:
            True if the title changed.
        """
        session = self._sessions.get(session_id)
        new_title = title.strip()
        if session is None or not new_title:
            return False
        session.title = new_title
        return True

    def delete(self, session_id: str) -> bool:
        """Remove a session and its timeline.

        If the deleted session was active, the most recently updated
        remaining session becomes active (None when none remain).

        Returns:
            True if a session was removed.
        """
        if self._sessions.pop(session_id, None) is None:
            return False
        if self.active_session_id == session_id:
            remaining = self.list()
            self.active_session_id = remaining[0].id if remaining else None
        logger.debug("Deleted session %s", session_id)
        return True

    def select(self, session_id: str) -> bool:
        """Make ``session_id`` active. Unknown ids are ignored."""
        if session_id not in self._sessions:
            logger.debug("Ignoring select of unknown session %s", session_id)
            return False
        self.active_session_id = session_id
        return True

    def list(self) -> list[Session]:
        """Sessions ordered by ``updated_at``, most recent first."""
        return sorted(self._sessions.values(), key=lambda s: s.updated_at, reverse=True)

    def summaries(self) -> list[SessionSummary]:
        return [session.summary() for session in self.list()]
