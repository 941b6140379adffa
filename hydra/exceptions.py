"""Exception hierarchy for the Hydra chat client."""

from __future__ import annotations


class HydraError(Exception):
    """Base exception for all application-specific errors."""


class AlreadyStreaming(HydraError):
    """Raised when a send is attempted while a turn is still in flight."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} already has a response in flight")
        self.session_id = session_id


class SessionNotFound(HydraError):
    """Raised when an operation names a session the registry does not hold."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Unknown session: {session_id}")
        self.session_id = session_id


class TransportError(HydraError):
    """Base class for failures talking to the chat endpoint."""


class TransportOpenFailure(TransportError):
    """The request could not be opened: network failure or non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportMidStreamFailure(TransportError):
    """The response stream ended or dropped before a terminal frame."""
