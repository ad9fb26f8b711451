"""Azure Communication Services bidirectional media streaming.

ACS forwards call audio over a websocket as JSON frames tagged with ``kind``.
Inbound ``AudioData`` frames become ``input_audio_buffer.append`` messages for
the model; model audio goes back as outbound ``AudioData`` frames, and a
``StopAudio`` frame cuts playback when the caller barges in.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from relay.connections import Connection
from relay.errors import DeliveryFailedError, MalformedMessageError
from relay.schemas import EXTENSION_TOOL_RESPONSE, MessageType, RelayCounters
from relay.transports import ClientTransport

LOGGER = logging.getLogger(__name__)


def audio_data_frame(data: str) -> str:
    return json.dumps({"kind": "AudioData", "audioData": {"data": data}})


def stop_audio_frame() -> str:
    return json.dumps({"kind": "StopAudio", "audioData": None, "stopAudio": {}})


class AudioDeliveryChannel:
    """Sends outbound audio frames, waiting a bounded time for the socket to open."""

    def __init__(
        self,
        connection: Connection,
        *,
        counters: RelayCounters,
        max_retries: int = 5,
        retry_delay: float = 1.0,
    ) -> None:
        self._connection = connection
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._counters = counters

    async def send_audio(self, delta: str) -> bool:
        return await self._deliver(audio_data_frame(delta))

    async def stop_audio(self) -> bool:
        return await self._deliver(stop_audio_frame())

    async def _deliver(self, frame: str) -> bool:
        try:
            await self._send_with_retry(frame)
        except DeliveryFailedError as exc:
            self._counters.delivery_failures += 1
            LOGGER.error("Failed to send audio frame: %s", exc.detail)
            return False
        return True

    async def _send_with_retry(self, frame: str) -> None:
        for attempt in range(1, self._max_retries + 1):
            if self._connection.is_open and await self._connection.send(frame):
                return
            LOGGER.info(
                "Client socket not open. Retrying... (%d/%d)",
                attempt,
                self._max_retries,
            )
            if attempt < self._max_retries:
                await asyncio.sleep(self._retry_delay)
        raise DeliveryFailedError()


class AcsMediaTransport(ClientTransport):
    """Caller on a phone line bridged in by ACS media streaming."""

    def __init__(
        self,
        connection: Connection,
        audio: AudioDeliveryChannel,
        *,
        session_instructions: str,
    ) -> None:
        super().__init__(connection)
        self._audio = audio
        self._session_instructions = session_instructions

    def initial_messages(self) -> list[dict[str, Any]]:
        # Voice, tools, tool_choice and configured overrides are applied by the
        # to-server rewrite like any caller-sent session.update.
        return [
            {
                "type": MessageType.SESSION_UPDATE.value,
                "session": {
                    "instructions": self._session_instructions,
                    "input_audio_format": "pcm16",
                    "output_audio_format": "pcm16",
                    "turn_detection": {"type": "server_vad"},
                    "input_audio_transcription": {"model": "whisper-1"},
                },
            }
        ]

    def decode(self, raw: str) -> dict[str, Any] | None:
        try:
            frame = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise MalformedMessageError(f"Invalid ACS frame: {exc}") from exc
        if not isinstance(frame, dict):
            raise MalformedMessageError("ACS frame is not an object")

        kind = str(frame.get("kind") or "")
        if kind != "AudioData":
            LOGGER.debug("Ignoring ACS %s frame", kind or "untyped")
            return None

        audio_data = frame.get("audioData") or {}
        data = audio_data.get("data") if isinstance(audio_data, dict) else None
        if not isinstance(data, str) or not data:
            return None
        return {"type": MessageType.INPUT_AUDIO_APPEND.value, "audio": data}

    async def deliver(self, message: dict[str, Any]) -> bool:
        kind = MessageType.from_tag(message.get("type"))

        if kind is MessageType.AUDIO_DELTA:
            delta = message.get("delta")
            if not delta:
                return False
            return await self._audio.send_audio(delta)
        if kind is MessageType.SPEECH_STARTED:
            LOGGER.info("Voice activity detected at %s ms, stopping playback", message.get("audio_start_ms"))
            return await self._audio.stop_audio()
        if kind is MessageType.SESSION_CREATED:
            LOGGER.info("Session started with id %s", (message.get("session") or {}).get("id"))
        elif kind is MessageType.INPUT_TRANSCRIPTION_COMPLETED:
            LOGGER.info("User: %s", message.get("transcript"))
        elif kind is MessageType.AUDIO_TRANSCRIPT_DONE:
            LOGGER.info("AI: %s", message.get("transcript"))
        elif kind is MessageType.RESPONSE_DONE:
            LOGGER.debug("Response finished: %s", (message.get("response") or {}).get("status"))
        elif kind is MessageType.ERROR:
            LOGGER.error("Realtime error: %s", message.get("error"))
        elif message.get("type") == EXTENSION_TOOL_RESPONSE:
            LOGGER.warning("Tool %s answered the caller directly; not playable on a phone line", message.get("tool_name"))
        return False
