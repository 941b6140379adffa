"""ChatClient — the explicit owner of registry, transport, and controller.

Create one per process (or per UI), use it as an async context manager,
and pass it to display layers by reference:

    async with ChatClient() as client:
        subscription = client.submit("hi")
        await subscription.wait()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from hydra.catalog import load_client_config
from hydra.exceptions import SessionNotFound
from hydra.schemas.config import ClientConfig, HealthStatus
from hydra.schemas.messages import Attachment
from hydra.schemas.session import SessionSummary
from hydra.sessions.registry import Session, SessionRegistry
from hydra.stream.controller import EventCallback, StreamController, Subscription
from hydra.transport import ChatTransport

logger = logging.getLogger(__name__)


class ChatClient:
    """Multi-session chat client.

    Args:
        config: Client settings. Loaded from defaults.toml when omitted.
        transport: Transport to use. Built from ``config`` when omitted.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: ChatTransport | None = None,
    ) -> None:
        self.config = config or load_client_config()
        self.registry = SessionRegistry()
        self.transport = transport or ChatTransport(self.config)
        self.controller = StreamController(self.registry, self.transport, self.config)
        self._closed = False

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ── Sessions ─────────────────────────────────────────────

    @property
    def active_session(self) -> Session | None:
        return self.registry.active

    def new_session(self, title: str | None = None) -> Session:
        return self.registry.create(title)

    def select(self, session_id: str) -> bool:
        return self.registry.select(session_id)

    def rename(self, session_id: str, title: str) -> bool:
        return self.registry.rename(session_id, title)

    def delete(self, session_id: str) -> bool:
        return self.controller.delete_session(session_id)

    def sessions(self) -> list[SessionSummary]:
        return self.registry.summaries()

    def find_session(self, prefix: str) -> Session | None:
        """Find a session by id or unique id prefix."""
        matches = [s for s in self.registry.list() if s.id.startswith(prefix)]
        return matches[0] if len(matches) == 1 else None

    # ── Chat ─────────────────────────────────────────────────

    def submit(
        self,
        text: str,
        attachments: Iterable[Attachment] = (),
        model: str | None = None,
        *,
        on_event: EventCallback | None = None,
    ) -> Subscription:
        """Send a message in the active session, creating one if needed."""
        session = self.registry.active or self.registry.create()
        return self.controller.send(
            session.id, text, attachments, model, on_event=on_event,
        )

    def cancel(self, session_id: str | None = None) -> bool:
        """Cancel the in-flight request of a session (default: active)."""
        session_id = session_id or self.registry.active_session_id
        if session_id is None:
            return False
        return self.controller.cancel(session_id)

    def clear(self, session_id: str | None = None) -> None:
        """Cancel and clear a session's timeline (default: active)."""
        session_id = session_id or self.registry.active_session_id
        if session_id is None:
            raise SessionNotFound("<none active>")
        self.controller.clear(session_id)

    async def check_health(self) -> HealthStatus:
        return await self.transport.check_health()

    async def aclose(self) -> None:
        """Cancel all streams and release the transport."""
        if self._closed:
            return
        self._closed = True
        await self.controller.aclose()
        await self.transport.aclose()
        logger.debug("Chat client closed")
