"""Caller-side framing for the relay.

A transport turns caller frames into realtime messages for the model and
delivers realtime messages back in whatever form the caller understands.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from relay.connections import Connection
from relay.transformer import parse_message

LOGGER = logging.getLogger(__name__)


class ClientTransport(ABC):
    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    @property
    def connection(self) -> Connection:
        return self._connection

    def initial_messages(self) -> list[dict[str, Any]]:
        """Messages to send upstream before relaying any caller traffic."""

        return []

    @abstractmethod
    def decode(self, raw: str) -> dict[str, Any] | None:
        """Turn one caller frame into a realtime message, or None to skip it."""

    @abstractmethod
    async def deliver(self, message: dict[str, Any]) -> bool:
        """Deliver a realtime message to the caller. False means dropped."""


class RealtimeClientTransport(ClientTransport):
    """Caller that speaks the realtime protocol itself, e.g. a browser."""

    def decode(self, raw: str) -> dict[str, Any]:
        return parse_message(raw)

    async def deliver(self, message: dict[str, Any]) -> bool:
        return await self._connection.send(json.dumps(message))
