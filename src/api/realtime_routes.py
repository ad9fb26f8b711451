"""Websocket entry points for realtime relay sessions.

- ``/ws``: callers that speak the realtime protocol (browser clients).
- ``/ws/acs``: ACS bidirectional media streaming for phone calls.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends, WebSocket
from fastapi.responses import PlainTextResponse

from api.dependencies import get_phone_session_config, get_session_config, get_upstream_connector
from config.settings import get_settings
from integrations.acs_streaming import AcsMediaTransport, AudioDeliveryChannel
from relay.bridge import RealtimeBridge
from relay.connections import ClientWebSocketConnection, Connection
from relay.errors import UpstreamConnectError
from relay.schemas import RelayCounters, SessionConfig
from relay.transports import ClientTransport, RealtimeClientTransport

LOGGER = logging.getLogger(__name__)

# Close reasons are capped at 123 bytes by the websocket protocol.
MAX_CLOSE_REASON = 120

router = APIRouter(tags=["realtime"])

UpstreamConnector = Callable[[SessionConfig], Awaitable[Connection]]


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Realtime middle tier is running."


async def _run_session(
    transport: ClientTransport,
    config: SessionConfig,
    connect: UpstreamConnector,
    counters: RelayCounters,
) -> None:
    try:
        upstream = await connect(config)
    except UpstreamConnectError as exc:
        LOGGER.error("Session setup failed: %s", exc.detail)
        await transport.connection.close(code=1011, reason=exc.detail[:MAX_CLOSE_REASON])
        return

    bridge = RealtimeBridge(config, transport, upstream, counters=counters)
    await bridge.run()


@router.websocket("/ws")
async def realtime_relay(
    websocket: WebSocket,
    config: SessionConfig = Depends(get_session_config),
    connect: UpstreamConnector = Depends(get_upstream_connector),
) -> None:
    await websocket.accept()
    transport = RealtimeClientTransport(ClientWebSocketConnection(websocket))
    await _run_session(transport, config, connect, RelayCounters())


@router.websocket("/ws/acs")
async def acs_media_relay(
    websocket: WebSocket,
    config: SessionConfig = Depends(get_phone_session_config),
    connect: UpstreamConnector = Depends(get_upstream_connector),
) -> None:
    await websocket.accept()
    settings = get_settings()
    counters = RelayCounters()
    connection = ClientWebSocketConnection(websocket)
    audio = AudioDeliveryChannel(
        connection,
        max_retries=settings.audio_send_max_retries,
        retry_delay=settings.audio_send_retry_delay_seconds,
        counters=counters,
    )
    transport = AcsMediaTransport(
        connection,
        audio,
        session_instructions=config.onboarding_instructions,
    )
    await _run_session(transport, config, connect, counters)
