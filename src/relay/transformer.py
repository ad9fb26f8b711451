"""Per-direction rewrite rules for realtime messages.

``to_server`` handles caller messages on their way to the model and
``to_client`` handles model messages on their way to the caller. Neither
sends anything itself: ``to_client`` returns a ``ClientDecision`` telling the
bridge what to forward, which completed tool call to execute and whether the
model has to be asked to continue.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from typing import Any

from relay.errors import MalformedMessageError
from relay.pending import PendingCallTracker
from relay.schemas import MessageType, RelayCounters, SessionConfig

LOGGER = logging.getLogger(__name__)

FUNCTION_CALL = "function_call"
FUNCTION_CALL_OUTPUT = "function_call_output"


@dataclass(frozen=True)
class FunctionCall:
    call_id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class ClientDecision:
    forward: dict[str, Any] | None = None
    tool_call: FunctionCall | None = None
    request_continuation: bool = False


SUPPRESS = ClientDecision()


def parse_message(raw: str) -> dict[str, Any]:
    """Decode one text frame into a message dict."""

    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedMessageError(f"Invalid JSON frame: {exc}") from exc
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        raise MalformedMessageError()
    return message


def _item_type(message: dict[str, Any]) -> str | None:
    item = message.get("item")
    if isinstance(item, dict):
        return item.get("type")
    return None


class MessageTransformer:
    def __init__(
        self,
        config: SessionConfig,
        tracker: PendingCallTracker,
        counters: RelayCounters,
    ) -> None:
        self._config = config
        self._tracker = tracker
        self._counters = counters

    @property
    def tool_choice(self) -> str:
        return "auto" if len(self._config.tools) > 0 else "none"

    def to_server(self, message: dict[str, Any]) -> dict[str, Any]:
        """Apply configured overrides to ``session.update``; pass anything else through."""

        if MessageType.from_tag(message.get("type")) is not MessageType.SESSION_UPDATE:
            return message

        updated = copy.deepcopy(message)
        session = updated.get("session")
        if not isinstance(session, dict):
            session = {}
            updated["session"] = session

        config = self._config
        if config.system_message:
            session["instructions"] = config.system_message
        if config.temperature is not None:
            session["temperature"] = config.temperature
        if config.max_tokens is not None:
            session["max_response_output_tokens"] = config.max_tokens
        if config.disable_audio is not None:
            session["disable_audio"] = config.disable_audio
        if config.voice:
            session["voice"] = config.voice
        session["tool_choice"] = self.tool_choice
        session["tools"] = config.tools.schemas()

        LOGGER.debug("Rewrote session.update: tool_choice=%s tools=%s", session["tool_choice"], config.tools.names())
        return updated

    async def to_client(self, message: dict[str, Any]) -> ClientDecision:
        kind = MessageType.from_tag(message.get("type"))

        if kind is MessageType.SESSION_CREATED:
            return ClientDecision(forward=self._rewrite_session_created(message))

        if kind is MessageType.OUTPUT_ITEM_ADDED:
            if _item_type(message) == FUNCTION_CALL:
                return SUPPRESS
            return ClientDecision(forward=message)

        if kind is MessageType.CONVERSATION_ITEM_CREATED:
            item_type = _item_type(message)
            if item_type == FUNCTION_CALL:
                await self._track_call(message)
                return SUPPRESS
            if item_type == FUNCTION_CALL_OUTPUT:
                LOGGER.debug("Suppressing echo of injected output: %s", message["item"].get("output"))
                return SUPPRESS
            return ClientDecision(forward=message)

        if kind in (MessageType.FUNCTION_CALL_ARGUMENTS_DELTA, MessageType.FUNCTION_CALL_ARGUMENTS_DONE):
            return SUPPRESS

        if kind is MessageType.OUTPUT_ITEM_DONE:
            if _item_type(message) != FUNCTION_CALL:
                return ClientDecision(forward=message)
            item = message["item"]
            call = FunctionCall(
                call_id=str(item.get("call_id") or ""),
                name=str(item.get("name") or ""),
                arguments=item.get("arguments") or "{}",
            )
            return ClientDecision(tool_call=call)

        if kind is MessageType.RESPONSE_DONE:
            return await self._finish_response(message)

        return ClientDecision(forward=message)

    def _rewrite_session_created(self, message: dict[str, Any]) -> dict[str, Any]:
        updated = copy.deepcopy(message)
        session = updated.get("session")
        if not isinstance(session, dict):
            session = {}
            updated["session"] = session

        config = self._config
        if config.onboarding_instructions:
            session["instructions"] = config.onboarding_instructions
        session["tools"] = config.tools.schemas()
        if config.voice:
            session["voice"] = config.voice
        session["tool_choice"] = self.tool_choice
        session["max_response_output_tokens"] = config.max_tokens
        return updated

    async def _track_call(self, message: dict[str, Any]) -> None:
        item = message["item"]
        call_id = item.get("call_id")
        if not call_id:
            LOGGER.warning("Function call item without call_id: %s", item.get("id"))
            return
        added = await self._tracker.add(str(call_id), message.get("previous_item_id"))
        if not added:
            LOGGER.debug("Duplicate function call item for %s ignored", call_id)

    async def _finish_response(self, message: dict[str, Any]) -> ClientDecision:
        summary = await self._tracker.drain()
        if summary.unresolved:
            self._counters.abandoned_tool_calls += len(summary.unresolved)
            LOGGER.warning(
                "Response finished with %d unresolved tool call(s): %s",
                len(summary.unresolved),
                ", ".join(call.call_id for call in summary.unresolved),
            )

        forward = message
        response = message.get("response")
        if isinstance(response, dict) and isinstance(response.get("output"), list):
            outputs = response["output"]
            kept = [
                item for item in outputs if not (isinstance(item, dict) and item.get("type") == FUNCTION_CALL)
            ]
            if len(kept) != len(outputs):
                forward = {**message, "response": {**response, "output": kept}}

        return ClientDecision(forward=forward, request_continuation=summary.needs_continuation)
