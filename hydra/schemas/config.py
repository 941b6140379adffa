"""Client configuration, model catalog, and health schemas.

ClientConfig is loaded from defaults.toml, ModelInfo entries from
models.toml (see hydra.config).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ClientConfig(BaseModel):
    """Connection and generation defaults for the chat client."""

    base_url: str = Field(
        default="http://127.0.0.1:8082", description="Base URL of the chat backend"
    )
    chat_path: str = Field(
        default="/api/claude/chat/stream", description="Path of the NDJSON chat endpoint"
    )
    health_path: str = Field(default="/api/health", description="Path of the health probe")
    provider: str = Field(
        default="anthropic", description="Provider whose availability gates sending"
    )
    default_model: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model used when none is chosen"
    )
    max_tokens: int = Field(default=4096, gt=0, description="Output token limit per request")
    temperature: float | None = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature (None = server default)"
    )
    system_prompt: str = Field(default="", description="System prompt sent with every request")
    request_timeout: float = Field(
        default=300.0, gt=0, description="Timeout in seconds for connect and each read"
    )


class ModelInfo(BaseModel):
    """One entry of the static model catalog."""

    id: str = Field(description="Model identifier sent in requests")
    name: str = Field(description="Human-friendly model name")
    tier: str = Field(default="", description="Catalog tier (Commander, Coordinator, ...)")
    provider: str = Field(default="anthropic", description="Provider serving the model")
    available: bool = Field(default=True, description="Whether the model can be selected")


class ProviderInfo(BaseModel):
    """Availability of one provider as reported by the health probe."""

    name: str
    available: bool = False


class HealthStatus(BaseModel):
    """Result of the backend health probe."""

    status: str = Field(default="unreachable", description="Backend status string")
    version: str = Field(default="", description="Backend version")
    providers: list[ProviderInfo] = Field(default_factory=list)

    @property
    def reachable(self) -> bool:
        return self.status == "ok"

    def is_available(self, provider: str) -> bool:
        """Whether the named provider is configured on the backend."""
        return any(p.name == provider and p.available for p in self.providers)
