"""Stream controller: drives one chat request per session.

``send()`` appends the user turn and a pending assistant turn to the
session's timeline synchronously, then runs the request on an asyncio
task. Each decoded frame becomes a StreamEvent that is reduced into the
assistant turn and then handed to the optional subscriber callback.

Every call ends in exactly one terminal event (CompletedEvent or
FailedEvent). Cancellation is cooperative: a CancellationToken is checked
before every dispatch, and once it is set nothing more from that call
reaches the timeline or the subscriber.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from contextlib import aclosing
from typing import Any

from hydra.exceptions import (
    AlreadyStreaming,
    SessionNotFound,
    TransportError,
    TransportMidStreamFailure,
)
from hydra.schemas.config import ClientConfig
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
    FailedEvent,
    StreamEvent,
    TerminalEvent,
    TokenEvent,
)
from hydra.sessions.registry import SessionRegistry
from hydra.stream.decoder import decode_frames
from hydra.timeline.store import TimelineStore
from hydra.transport import ChatTransport

logger = logging.getLogger(__name__)

CANCELLED_REASON = "Request cancelled"

# Type alias for subscriber callbacks (sync or async)
EventCallback = Callable[[StreamEvent], Any]


class CancellationToken:
    """One-way flag shared between a subscription and its read loop."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class Subscription:
    """Handle for one in-progress ``send()`` call."""

    def __init__(
        self,
        session_id: str,
        timeline: TimelineStore,
        user_turn: Turn,
        assistant_turn_id: str,
        loop: asyncio.AbstractEventLoop,
        on_cancel: Callable[[Subscription], bool],
    ) -> None:
        self.session_id = session_id
        self.timeline = timeline
        self.user_turn = user_turn
        self.assistant_turn_id = assistant_turn_id
        self.token = CancellationToken()
        self._result: asyncio.Future[TerminalEvent] = loop.create_future()
        self._on_cancel = on_cancel
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def done(self) -> bool:
        """True once the terminal event has been applied."""
        return self._result.done()

    @property
    def assistant_turn(self) -> Turn | None:
        return self.timeline.get(self.assistant_turn_id)

    def cancel(self) -> bool:
        """Cancel the request. Returns False if it had already finished."""
        return self._on_cancel(self)

    async def wait(self) -> TerminalEvent:
        """Wait for and return the terminal event of this call."""
        return await asyncio.shield(self._result)

    def _resolve(self, event: TerminalEvent) -> None:
        if not self._result.done():
            self._result.set_result(event)


def render_content(text: str, attachments: Iterable[Attachment]) -> str:
    """Message content sent for a user turn, with file attachments inlined."""
    content = text
    for attachment in attachments:
        if attachment.kind == AttachmentKind.FILE:
            content += f"\n\n--- File: {attachment.name} ---\n{attachment.payload}"
    return content


class StreamController:
    """Issues chat requests and merges their streams into session timelines.

    At most one request per session is active; the timeline's in-flight
    invariant is checked before any new work is accepted.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        transport: ChatTransport,
        config: ClientConfig,
    ) -> None:
        self._registry = registry
        self._transport = transport
        self._config = config
        self._subscriptions: dict[str, Subscription] = {}
        self._tasks: set[asyncio.Task] = set()

    def subscription(self, session_id: str) -> Subscription | None:
        """The current subscription for a session, if any."""
        return self._subscriptions.get(session_id)

    # ── Sending ──────────────────────────────────────────────

    def send(
        self,
        session_id: str,
        text: str,
        attachments: Iterable[Attachment] = (),
        model: str | None = None,
        *,
        on_event: EventCallback | None = None,
    ) -> Subscription:
        """Start a chat request for ``session_id``.

        Must be called from a running event loop. The user turn and the
        pending assistant turn are in the timeline when this returns.

        Args:
            session_id: Session to send in.
            text: The new user message.
            attachments: Files or images attached to the message.
            model: Model id (defaults to the configured default model).
            on_event: Optional callback invoked with every StreamEvent after
                it has been applied to the timeline.

        Raises:
            SessionNotFound: If the registry has no such session.
            AlreadyStreaming: If the session already has a turn in flight.
            ValueError: If both text and attachments are empty.
        """
        loop = asyncio.get_running_loop()
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        timeline = session.timeline
        if timeline.in_flight is not None:
            raise AlreadyStreaming(session_id)

        attachments = tuple(attachments)
        if not text.strip() and not attachments:
            raise ValueError("Cannot send an empty message")

        lingering = self._subscriptions.get(session_id)
        if lingering is not None:
            self._cancel(lingering)

        model = model or self._config.default_model
        prior = timeline.turns
        user_turn = timeline.append_user(text, attachments)
        assistant_turn = timeline.append_pending_assistant(model)
        request = self.build_request(prior, user_turn, model)

        subscription = Subscription(
            session_id, timeline, user_turn, assistant_turn.id, loop, self._cancel,
        )
        self._subscriptions[session_id] = subscription
        task = loop.create_task(
            self._run(subscription, request, on_event),
            name=f"hydra-stream-{session_id[:8]}",
        )
        subscription._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return subscription

    def build_request(self, prior: Sequence[Turn], user_turn: Turn, model: str) -> ChatRequest:
        """Build the request body from the prior turns plus the new user turn.

        Turns in error or still in flight are not sent, nor are empty
        assistant turns. System turns are folded into the system prompt.
        """
        system_parts = [self._config.system_prompt] if self._config.system_prompt else []
        messages: list[WireMessage] = []
        for turn in (*prior, user_turn):
            if turn.role == Role.SYSTEM:
                system_parts.append(turn.text)
                continue
            if turn.state == TurnState.ERROR or turn.is_in_flight:
                continue
            content = render_content(turn.text, turn.attachments)
            if turn.role == Role.ASSISTANT and not content:
                continue
            messages.append(WireMessage(role=turn.role, content=content))

        return ChatRequest(
            model=model,
            messages=messages,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
            system="\n\n".join(system_parts) or None,
        )

    # ── Cancellation ─────────────────────────────────────────

    def cancel(self, session_id: str) -> bool:
        """Cancel the active request of a session.

        The in-flight assistant turn ends in error with a cancellation
        message. Returns False if nothing was in flight.
        """
        subscription = self._subscriptions.get(session_id)
        if subscription is None:
            return False
        return self._cancel(subscription)

    def clear(self, session_id: str) -> None:
        """Cancel any active request, then clear the session's timeline."""
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        self.cancel(session_id)
        session.timeline.clear()

    def delete_session(self, session_id: str) -> bool:
        """Cancel any active request, then delete the session."""
        self.cancel(session_id)
        return self._registry.delete(session_id)

    async def aclose(self) -> None:
        """Cancel every active request and wait for all stream tasks to unwind."""
        for subscription in list(self._subscriptions.values()):
            self._cancel(subscription)
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _cancel(self, subscription: Subscription) -> bool:
        was_active = not subscription.done
        if was_active:
            failed = FailedEvent(reason=CANCELLED_REASON)
            subscription.timeline.apply_event(subscription.assistant_turn_id, failed)
            subscription._resolve(failed)
            logger.info("Cancelled stream for session %s", subscription.session_id)
        subscription.token.cancel()
        task = subscription._task
        if task is not None and not task.done():
            task.cancel()
        if self._subscriptions.get(subscription.session_id) is subscription:
            del self._subscriptions[subscription.session_id]
        return was_active

    # ── Read loop ────────────────────────────────────────────

    async def _run(
        self,
        subscription: Subscription,
        request: ChatRequest,
        on_event: EventCallback | None,
    ) -> None:
        try:
            try:
                terminal = await self._consume(subscription, request, on_event)
            except TransportError as e:
                logger.warning("Chat stream failed for session %s: %s", subscription.session_id, e)
                terminal = FailedEvent(reason=str(e))
            except Exception as e:
                logger.exception("Unexpected error in chat stream for %s", subscription.session_id)
                terminal = FailedEvent(reason=str(e) or type(e).__name__)

            if terminal is None or not self._apply(subscription, terminal):
                return
            subscription._resolve(terminal)
            if isinstance(terminal, CompletedEvent):
                logger.info(
                    "Chat stream complete: model=%s total_tokens=%s",
                    terminal.model, terminal.total_tokens,
                )
            await self._notify(on_event, terminal)
        finally:
            if self._subscriptions.get(subscription.session_id) is subscription:
                del self._subscriptions[subscription.session_id]

    async def _consume(
        self,
        subscription: Subscription,
        request: ChatRequest,
        on_event: EventCallback | None,
    ) -> TerminalEvent | None:
        async with self._transport.open_stream(request) as chunks:
            async with aclosing(decode_frames(chunks)) as frames:
                async for frame in frames:
                    if subscription.cancelled:
                        return None
                    if frame.done:
                        return CompletedEvent(
                            model=frame.model or request.model,
                            total_tokens=frame.total_tokens,
                        )
                    event = TokenEvent(text=frame.token)
                    if not self._apply(subscription, event):
                        return None
                    await self._notify(on_event, event)
        if subscription.cancelled:
            return None
        raise TransportMidStreamFailure("Stream ended before the response was complete")

    def _apply(self, subscription: Subscription, event: StreamEvent) -> bool:
        """Reduce an event into the timeline unless the call was cancelled."""
        if subscription.cancelled:
            return False
        subscription.timeline.apply_event(subscription.assistant_turn_id, event)
        return True

    async def _notify(self, on_event: EventCallback | None, event: StreamEvent) -> None:
        if on_event is None:
            return
        try:
            result = on_event(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("Stream subscriber error for %s event", event.kind)
