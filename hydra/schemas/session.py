"""Session listing schema consumed by session-list views."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SessionSummary(BaseModel):
    """Lightweight session summary for listing."""

    id: str = Field(description="Unique session identifier")
    title: str = Field(description="User-visible session title")
    created_at: datetime = Field(description="When the session was created")
    updated_at: datetime = Field(description="Last turn append or completion")
    message_count: int = Field(default=0, ge=0, description="Number of turns")
    preview: str = Field(
        default="", description="First 100 characters of the first user turn",
    )
