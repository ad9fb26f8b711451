"""Tool abstractions advertised to the realtime model.

Every tool publishes a realtime function schema and an async ``invoke`` that
turns structured arguments into a ``ToolResult``. A ``ToolRegistry`` holds the
tools one session advertises; it is snapshotted per session so the set cannot
change under a live conversation.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from relay.schemas import ToolResult, ToolResultDirection

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolParameter:
    name: str
    type: str
    description: str
    required: bool = False
    enum: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            result["enum"] = list(self.enum)
        return result


@dataclass(frozen=True)
class ToolDefinition:
    """Provider-facing metadata for a tool."""

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = field(default_factory=tuple)
    additional_properties: bool | None = None

    def to_realtime_schema(self) -> dict[str, Any]:
        """Render the flat function schema used by ``session.update``.

        Realtime sessions take ``name``/``description`` at the top level rather
        than nested under ``function`` as chat completions do.
        """

        parameters: dict[str, Any] = {
            "type": "object",
            "properties": {p.name: p.to_dict() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }
        if self.additional_properties is not None:
            parameters["additionalProperties"] = self.additional_properties
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": parameters,
        }


class Tool(ABC):
    """A named capability the model may call."""

    #: Where this tool's results are routed.
    destination: ToolResultDirection = ToolResultDirection.TO_SERVER

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return the tool's metadata."""

    @abstractmethod
    async def invoke(self, arguments: dict[str, Any]) -> ToolResult:
        """Run the tool with parsed arguments."""

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def schema(self) -> dict[str, Any]:
        return self.definition.to_realtime_schema()


class ToolRegistry:
    """Name-keyed collection of tools."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            LOGGER.warning("Tool %s already registered, overwriting", tool.name)
        self._tools[tool.name] = tool
        LOGGER.debug("Registered tool %s", tool.name)

    def get(self, name: str | None) -> Tool | None:
        if name is None:
            return None
        return self._tools.get(name)

    def schemas(self) -> list[dict[str, Any]]:
        return [tool.schema for tool in self._tools.values()]

    def names(self) -> list[str]:
        return list(self._tools)

    def snapshot(self) -> ToolRegistry:
        return ToolRegistry(self._tools.values())

    def routed_to(self, destination: ToolResultDirection) -> ToolRegistry:
        """Return a registry of the tools whose results reach ``destination``."""

        return ToolRegistry(tool for tool in self._tools.values() if destination in tool.destination)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
