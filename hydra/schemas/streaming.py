"""Streaming schemas for real-time token delivery.

Defines the Frame model (one decoded NDJSON line from the chat endpoint)
and the StreamEvent union the stream controller emits to the timeline
and to subscribers.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Frame(BaseModel):
    """A single decoded line of the NDJSON response stream."""

    token: str = Field(default="", description="Text produced since the previous frame")
    done: bool = Field(default=False, description="True on the terminal frame")
    model: str | None = Field(default=None, description="Model that served the request")
    total_tokens: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("total_tokens", "totalTokens"),
        description="Output token count, reported on the terminal frame",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("token", "done", mode="before")
    @classmethod
    def _null_as_default(cls, value: object, info) -> object:
        # The endpoint may send explicit nulls for absent fields.
        if value is None:
            return "" if info.field_name == "token" else False
        return value

    @field_validator("total_tokens", mode="before")
    @classmethod
    def _advisory_count(cls, value: object) -> int | None:
        # The count is advisory: an unusable value must not reject the frame.
        if isinstance(value, bool):
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int) and value >= 0:
            return value
        return None


class EventKind(StrEnum):
    """Kinds of events emitted by the stream controller."""

    TOKEN = "token"
    COMPLETED = "completed"
    FAILED = "failed"


class TokenEvent(BaseModel):
    """Incremental text for the in-flight assistant turn."""

    kind: Literal[EventKind.TOKEN] = EventKind.TOKEN
    text: str = Field(description="Text to append to the turn")

    model_config = ConfigDict(frozen=True)


class CompletedEvent(BaseModel):
    """Terminal event: the endpoint sent its final frame."""

    kind: Literal[EventKind.COMPLETED] = EventKind.COMPLETED
    model: str | None = Field(default=None, description="Model reported by the endpoint")
    total_tokens: int | None = Field(
        default=None, ge=0, description="Advisory output token count"
    )

    model_config = ConfigDict(frozen=True)


class FailedEvent(BaseModel):
    """Terminal event: the request failed or the stream was cut short."""

    kind: Literal[EventKind.FAILED] = EventKind.FAILED
    reason: str = Field(description="Human-readable failure description")

    model_config = ConfigDict(frozen=True)


StreamEvent = Annotated[
    TokenEvent | CompletedEvent | FailedEvent,
    Field(discriminator="kind"),
]

TerminalEvent = CompletedEvent | FailedEvent
