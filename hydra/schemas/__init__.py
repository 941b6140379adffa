"""Hydra schema definitions.

All Pydantic v2 models shared by the stream pipeline, timeline, and
session registry.
"""

from hydra.schemas.config import ClientConfig, HealthStatus, ModelInfo, ProviderInfo
from hydra.schemas.messages import (
    Attachment,
    AttachmentKind,
    ChatRequest,
    Role,
    Turn,
    TurnState,
    WireMessage,
)
from hydra.schemas.session import SessionSummary
from hydra.schemas.streaming import (
    CompletedEvent,
    EventKind,
    FailedEvent,
    Frame,
    StreamEvent,
    TerminalEvent,
    TokenEvent,
)

__all__ = [
    "Attachment",
    "AttachmentKind",
    "ChatRequest",
    "ClientConfig",
    "CompletedEvent",
    "EventKind",
    "FailedEvent",
    "Frame",
    "HealthStatus",
    "ModelInfo",
    "ProviderInfo",
    "Role",
    "SessionSummary",
    "StreamEvent",
    "TerminalEvent",
    "TokenEvent",
    "Turn",
    "TurnState",
    "WireMessage",
]
