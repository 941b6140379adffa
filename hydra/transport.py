"""HTTP transport for the chat backend.

Opens the streaming chat request with httpx and exposes the response body
as raw byte chunks for the frame decoder. Also implements the health
probe used to decide whether sending is allowed. Each request is a single
attempt; there is no retry policy.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from hydra.exceptions import TransportMidStreamFailure, TransportOpenFailure
from hydra.schemas.config import ClientConfig, HealthStatus
from hydra.schemas.messages import ChatRequest

logger = logging.getLogger(__name__)

_MAX_ERROR_DETAIL = 200


def _error_detail(body: bytes) -> str:
    """Extract a short reason from an error response body.

    The backend answers failures with ``{"error": ...}``; anything else is
    returned as (truncated) text.
    """
    text = body.decode("utf-8", errors="replace").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text[:_MAX_ERROR_DETAIL] or "Unknown error"
    if isinstance(data, dict) and "error" in data:
        error = data["error"]
        if isinstance(error, dict):
            error = error.get("message") or json.dumps(error)
        return str(error)[:_MAX_ERROR_DETAIL]
    return text[:_MAX_ERROR_DETAIL]


class ChatTransport:
    """Streaming HTTP client for the NDJSON chat endpoint.

    Pass ``client`` to share or mock an ``httpx.AsyncClient``; otherwise the
    transport creates and owns one and closes it in ``aclose()``.
    """

    def __init__(
        self,
        config: ClientConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.request_timeout),
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @asynccontextmanager
    async def open_stream(self, request: ChatRequest) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open the chat request and yield the response body as byte chunks.

        Raises:
            TransportOpenFailure: On connection errors or a non-success status.
            TransportMidStreamFailure: (from the yielded iterator) when the
                connection drops while the body is being read.
        """
        http_request = self._client.build_request(
            "POST", self._config.chat_path, json=request.to_wire(),
        )
        logger.info(
            "Opening chat stream: model=%s messages=%d",
            request.model, len(request.messages),
        )
        try:
            response = await self._client.send(http_request, stream=True)
        except httpx.HTTPError as e:
            raise TransportOpenFailure(f"Chat request failed: {e}") from e

        try:
            if response.is_error:
                body = await response.aread()
                raise TransportOpenFailure(
                    f"Chat request failed: {response.status_code} {_error_detail(body)}",
                    status_code=response.status_code,
                )
            yield self._iter_body(response)
        finally:
            await response.aclose()

    async def _iter_body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            raise TransportMidStreamFailure(f"Connection lost mid-stream: {e}") from e

    async def check_health(self) -> HealthStatus:
        """Probe the backend health endpoint.

        Never raises: an unreachable or malformed endpoint yields a status
        with no available providers.
        """
        try:
            response = await self._client.get(self._config.health_path)
            response.raise_for_status()
            return HealthStatus.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Health check failed: %s", e)
            return HealthStatus()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
