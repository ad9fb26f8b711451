"""Runs completed function calls and routes their results."""

from __future__ import annotations

import json
import logging
from typing import Any

from relay.connections import Connection
from relay.errors import ToolExecutionError
from relay.pending import PendingCallTracker
from relay.schemas import (
    EXTENSION_TOOL_RESPONSE,
    MessageType,
    RelayCounters,
    ToolResult,
    ToolResultDirection,
)
from relay.transformer import FUNCTION_CALL_OUTPUT, FunctionCall
from relay.transports import ClientTransport
from tools.base import ToolRegistry

LOGGER = logging.getLogger(__name__)


def function_call_output_message(call_id: str, output: str) -> dict[str, Any]:
    return {
        "type": MessageType.CONVERSATION_ITEM_CREATE.value,
        "item": {
            "type": FUNCTION_CALL_OUTPUT,
            "call_id": call_id,
            "output": output,
        },
    }


def tool_response_message(previous_item_id: str | None, tool_name: str, result: str) -> dict[str, Any]:
    return {
        "type": EXTENSION_TOOL_RESPONSE,
        "previous_item_id": previous_item_id,
        "tool_name": tool_name,
        "tool_result": result,
    }


class ToolExecutor:
    def __init__(
        self,
        registry: ToolRegistry,
        tracker: PendingCallTracker,
        counters: RelayCounters,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._counters = counters

    async def execute(self, call: FunctionCall, *, client: ClientTransport, upstream: Connection) -> ToolResult | None:
        """Invoke the tool behind ``call`` and deliver its result.

        Returns None without sending anything when the call was never tracked
        or names an unknown tool. Raises ``ToolExecutionError`` when the
        arguments cannot be parsed or the handler fails; nothing is sent then.
        """

        tool = self._registry.get(call.name)
        if tool is None or call.call_id not in self._tracker:
            self._counters.unresolved_tool_calls += 1
            LOGGER.warning(
                "Unresolvable tool call %s (%s): tracked=%s known_tool=%s",
                call.call_id,
                call.name,
                call.call_id in self._tracker,
                tool is not None,
            )
            return None

        pending = await self._tracker.resolve(call.call_id)
        if pending is None:
            # Drained by a concurrent response.done.
            self._counters.unresolved_tool_calls += 1
            LOGGER.warning("Tool call %s was cleared before it could run", call.call_id)
            return None

        try:
            arguments = json.loads(call.arguments)
        except (TypeError, ValueError) as exc:
            self._counters.tool_failures += 1
            raise ToolExecutionError(f"Invalid arguments for {call.name}: {exc}", tool_name=call.name) from exc
        if not isinstance(arguments, dict):
            self._counters.tool_failures += 1
            raise ToolExecutionError(f"Arguments for {call.name} must be an object", tool_name=call.name)

        LOGGER.info("Running tool %s for call %s", call.name, call.call_id)
        try:
            result = await tool.invoke(arguments)
        except Exception as exc:
            self._counters.tool_failures += 1
            raise ToolExecutionError(f"Tool {call.name} failed: {exc}", tool_name=call.name) from exc

        text = result.to_text()
        if ToolResultDirection.TO_SERVER in result.destination:
            await upstream.send(json.dumps(function_call_output_message(call.call_id, text)))
        if ToolResultDirection.TO_CLIENT in result.destination:
            await client.deliver(tool_response_message(pending.previous_item_id, call.name, text))
        return result
