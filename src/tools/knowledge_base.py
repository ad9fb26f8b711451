"""Tool backed by an external knowledge retriever."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from relay.schemas import ToolResult
from tools.base import Tool, ToolDefinition, ToolParameter

LOGGER = logging.getLogger(__name__)

Retriever = Callable[[str], Awaitable[str]]

NO_MATCH = "No relevant information was found in the knowledge base."


class KnowledgeBaseTool(Tool):
    """Grounds the model's answer on passages returned by ``retriever``.

    The retriever is opaque here: it takes the caller's question and resolves
    to the context text to hand to the model.
    """

    _definition = ToolDefinition(
        name="searchKnowledgeBase",
        description=(
            "Search the knowledge base for information relevant to the user's question "
            "before answering questions about the practice or its services."
        ),
        parameters=(
            ToolParameter(
                name="query",
                type="string",
                description="The question to look up",
                required=True,
            ),
        ),
    )

    def __init__(self, retriever: Retriever) -> None:
        self._retriever = retriever

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    async def invoke(self, arguments: dict[str, Any]) -> ToolResult:
        query = str(arguments.get("query") or "").strip()
        if not query:
            return ToolResult(text=NO_MATCH, destination=self.destination)

        context = await self._retriever(query)
        LOGGER.debug("Knowledge base returned %d chars for %r", len(context or ""), query)
        return ToolResult(text=context or NO_MATCH, destination=self.destination)
