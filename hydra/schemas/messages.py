"""Conversation schemas: turns, attachments, and the outgoing chat request.

A Turn is one message in a session's timeline. The ChatRequest is the
JSON body POSTed to the streaming endpoint.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Author of a turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TurnState(StrEnum):
    """Lifecycle state of a turn.

    User and system turns are created complete. Assistant turns start
    pending, move to streaming on the first token, and end complete or
    error.
    """

    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETE = "complete"
    ERROR = "error"


IN_FLIGHT_STATES = frozenset({TurnState.PENDING, TurnState.STREAMING})


class AttachmentKind(StrEnum):
    """Kinds of content a user can attach to a turn."""

    FILE = "file"
    IMAGE = "image"


class Attachment(BaseModel):
    """A file or image attached to a user turn."""

    name: str = Field(description="Display name, usually the file name")
    kind: AttachmentKind = Field(description="Whether this is a text file or an image")
    payload: str = Field(default="", description="File text, or base64 data for images")
    mime_type: str = Field(default="text/plain", description="MIME type of the payload")

    model_config = ConfigDict(frozen=True)


class Turn(BaseModel):
    """One message in a conversation timeline.

    Turns are frozen; the reducer produces updated copies instead of
    mutating them in place.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique turn identifier (UUID v4)",
    )
    role: Role = Field(description="Who authored the turn")
    text: str = Field(default="", description="Message body")
    attachments: tuple[Attachment, ...] = Field(
        default=(), description="Attachments in the order the user added them"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the turn was created",
    )
    model: str | None = Field(default=None, description="Model that produced this turn")
    state: TurnState = Field(default=TurnState.COMPLETE, description="Lifecycle state")

    model_config = ConfigDict(frozen=True)

    @property
    def is_in_flight(self) -> bool:
        """Whether the turn is still waiting for or receiving tokens."""
        return self.state in IN_FLIGHT_STATES


class WireMessage(BaseModel):
    """A single {role, content} entry of the request's messages list."""

    role: Role
    content: str


class ChatRequest(BaseModel):
    """Body of the streaming chat request."""

    model: str = Field(description="Model identifier to route the request to")
    messages: list[WireMessage] = Field(description="Prior turns plus the new user message")
    max_tokens: int = Field(default=4096, gt=0, description="Output token limit")
    temperature: float | None = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature"
    )
    system: str | None = Field(default=None, description="System prompt")
    stream: bool = Field(default=True, description="Always true for this client")

    def to_wire(self) -> dict:
        """Serialize to the JSON body, omitting unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)
