"""Duplex connection adapters used by the relay.

The bridge only needs to receive text frames, send text frames and close.
Both the caller-facing Starlette websocket and the upstream ``websockets``
client are wrapped to that shape. A send on a connection that is not open is
dropped and reported as ``False`` instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol
from urllib.parse import urlencode

import websockets
from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from relay.errors import UpstreamConnectError
from relay.schemas import SessionConfig

LOGGER = logging.getLogger(__name__)

TokenProvider = Callable[[], str]

UPSTREAM_MAX_MESSAGE_BYTES = 10 * 1024 * 1024


class Connection(Protocol):
    @property
    def is_open(self) -> bool:  # pragma: no cover - protocol stub
        ...

    @property
    def is_closed(self) -> bool:  # pragma: no cover - protocol stub
        ...

    async def receive(self) -> str | None:
        """Return the next text frame, or None once the peer has gone away."""

    async def send(self, text: str) -> bool:
        """Send a text frame. Returns False when the frame was dropped."""

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection. Safe to call more than once."""


class ClientWebSocketConnection:
    """Caller-facing socket accepted by a FastAPI websocket route."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    @property
    def is_closed(self) -> bool:
        return (
            self._closed
            or self._websocket.client_state == WebSocketState.DISCONNECTED
            or self._websocket.application_state == WebSocketState.DISCONNECTED
        )

    async def receive(self) -> str | None:
        if self.is_closed:
            return None
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            self._closed = True
            return None
        text = message.get("text")
        if text is None and message.get("bytes") is not None:
            text = message["bytes"].decode("utf-8", errors="replace")
        return text or ""

    async def send(self, text: str) -> bool:
        if not self.is_open:
            LOGGER.debug("Dropping frame for closed client connection")
            return False
        try:
            await self._websocket.send_text(text)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            LOGGER.debug("Client send failed, marking closed: %s", exc)
            self._closed = True
            return False
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        already_closed = self.is_closed
        self._closed = True
        if already_closed:
            return
        try:
            await self._websocket.close(code=code, reason=reason)
        except (RuntimeError, OSError) as exc:
            LOGGER.debug("Client close raced with disconnect: %s", exc)


class UpstreamConnection:
    """Client connection to the realtime endpoint."""

    def __init__(self, websocket: Any) -> None:
        self._websocket = websocket

    @property
    def is_open(self) -> bool:
        return self._websocket.state is State.OPEN

    @property
    def is_closed(self) -> bool:
        return self._websocket.state in (State.CLOSING, State.CLOSED)

    async def receive(self) -> str | None:
        try:
            data = await self._websocket.recv()
        except ConnectionClosed as exc:
            LOGGER.info("Upstream connection closed: code=%s", exc.rcvd.code if exc.rcvd else None)
            return None
        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return data

    async def send(self, text: str) -> bool:
        if not self.is_open:
            LOGGER.debug("Dropping frame for closed upstream connection")
            return False
        try:
            await self._websocket.send(text)
        except ConnectionClosed as exc:
            LOGGER.debug("Upstream send failed: %s", exc)
            return False
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._websocket.close(code=code, reason=reason)


def _to_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url.removeprefix("https://")
    if http_url.startswith("http://"):
        return "ws://" + http_url.removeprefix("http://")
    return http_url


def build_realtime_url(config: SessionConfig) -> str:
    query = urlencode({"api-version": config.api_version, "deployment": config.deployment})
    return f"{_to_ws_url(config.endpoint.rstrip('/'))}/openai/realtime?{query}"


def build_auth_headers(*, api_key: str | None, token_provider: TokenProvider | None) -> dict[str, str]:
    if api_key:
        return {"api-key": api_key}
    if token_provider is not None:
        return {"Authorization": f"Bearer {token_provider()}"}
    raise UpstreamConnectError("Neither an API key nor a token provider is configured.")


async def open_upstream(
    config: SessionConfig,
    *,
    api_key: str | None = None,
    token_provider: TokenProvider | None = None,
    timeout: float = 10.0,
    connector: Callable[..., Any] = websockets.connect,
) -> UpstreamConnection:
    """Open the realtime websocket or raise ``UpstreamConnectError``."""

    url = build_realtime_url(config)
    headers = build_auth_headers(api_key=api_key, token_provider=token_provider)

    LOGGER.info("Connecting to realtime deployment %s", config.deployment)
    try:
        websocket = await asyncio.wait_for(
            connector(url, additional_headers=headers, max_size=UPSTREAM_MAX_MESSAGE_BYTES),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, TimeoutError) as exc:
        raise UpstreamConnectError(f"Connection timeout after {timeout:g}s") from exc
    except (OSError, WebSocketException) as exc:
        raise UpstreamConnectError(f"Upstream handshake failed: {exc}") from exc

    LOGGER.info("Upstream connection established")
    return UpstreamConnection(websocket)
