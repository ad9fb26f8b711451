"""In-memory stand-ins for relay connections and tools."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable
from typing import Any

from relay.schemas import ToolResult, ToolResultDirection
from tools.base import Tool, ToolDefinition, ToolParameter


class FakeConnection:
    """Queue-backed connection. Feeding ``None`` simulates the peer hanging up."""

    def __init__(self, incoming: Iterable[str | None] = (), *, is_open: bool = True) -> None:
        self._incoming: asyncio.Queue[str | None] = asyncio.Queue()
        for item in incoming:
            self._incoming.put_nowait(item)
        self._open = is_open
        self.sent: list[str] = []
        self.dropped: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self.send_attempts = 0

    @property
    def is_open(self) -> bool:
        return self._open and not self.closed

    @property
    def is_closed(self) -> bool:
        return self.closed

    def open(self) -> None:
        self._open = True

    def feed(self, item: str | None) -> None:
        self._incoming.put_nowait(item)

    def feed_json(self, message: dict[str, Any]) -> None:
        self.feed(json.dumps(message))

    @property
    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    async def receive(self) -> str | None:
        if self.closed:
            return None
        item = await self._incoming.get()
        if item is None:
            self.closed = True
        return item

    async def send(self, text: str) -> bool:
        self.send_attempts += 1
        if not self.is_open:
            self.dropped.append(text)
            return False
        self.sent.append(text)
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if not self.closed:
            self.close_code = code
        self.closed = True
        self._incoming.put_nowait(None)


class StaticTool(Tool):
    def __init__(self, name: str, text: Any, destination: ToolResultDirection) -> None:
        self._definition = ToolDefinition(
            name=name,
            description=f"Returns a canned {name} answer.",
            parameters=(ToolParameter(name="query", type="string", description="Question", required=True),),
        )
        self._text = text
        self.destination = destination
        self.calls: list[dict[str, Any]] = []

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    async def invoke(self, arguments: dict[str, Any]) -> ToolResult:
        self.calls.append(arguments)
        return ToolResult(text=self._text, destination=self.destination)


class GatedTool(Tool):
    """Holds its answer until ``release`` is set."""

    _definition = ToolDefinition(name="slowLookup", description="Answers once released.")

    def __init__(self, answer: str) -> None:
        self._answer = answer
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    async def invoke(self, arguments: dict[str, Any]) -> ToolResult:
        self.started.set()
        await self.release.wait()
        return ToolResult(text=self._answer, destination=self.destination)


class FailingTool(Tool):
    _definition = ToolDefinition(name="brokenTool", description="Always fails.")

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    async def invoke(self, arguments: dict[str, Any]) -> ToolResult:
        raise RuntimeError("backend unavailable")


def function_call_created(call_id: str, previous_item_id: str = "item_prev") -> dict[str, Any]:
    return {
        "type": "conversation.item.created",
        "previous_item_id": previous_item_id,
        "item": {"id": f"item_{call_id}", "type": "function_call", "call_id": call_id, "name": "referToMedicalDatabase"},
    }


def function_call_done(call_id: str, name: str, arguments: dict[str, Any] | str) -> dict[str, Any]:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return {
        "type": "response.output_item.done",
        "item": {"id": f"item_{call_id}", "type": "function_call", "call_id": call_id, "name": name, "arguments": arguments},
    }


async def echo_retriever(query: str) -> str:
    return f"Passages about {query}"
