"""Chat session registry."""

from hydra.sessions.registry import DEFAULT_TITLE, Session, SessionRegistry

__all__ = ["DEFAULT_TITLE", "Session", "SessionRegistry"]
