"""Tool forwarding caller questions to the AI companion chat service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from relay.schemas import ToolResult
from tools.base import Tool, ToolDefinition, ToolParameter

LOGGER = logging.getLogger(__name__)

APOLOGY = "Sorry, I couldn't find the information you're looking for. Please try again."


class AICompanionTool(Tool):
    """Ask the companion chat endpoint and hand its answer back to the model."""

    _definition = ToolDefinition(
        name="referToAICompanion",
        description=(
            "You can call this function to get information about AI companion and Vaalee. "
            "Vaalee is a AI companion that can help you with your questions."
        ),
        parameters=(
            ToolParameter(
                name="user_query",
                type="string",
                description="User query to refer to AI companion and Vaalee",
                required=True,
            ),
        ),
        additional_properties=False,
    )

    def __init__(self, endpoint: str, *, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    async def invoke(self, arguments: dict[str, Any]) -> ToolResult:
        user_query = str(arguments.get("user_query") or "")
        payload = [{"role": "user", "content": user_query}]

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint, json=payload)
            response.raise_for_status()
            answer = response.json().get("answer")
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.error("AI companion request failed: %s", exc)
            return ToolResult(text=APOLOGY, destination=self.destination)

        LOGGER.info("AI companion answered %d chars", len(str(answer or "")))
        return ToolResult(text=answer or APOLOGY, destination=self.destination)
