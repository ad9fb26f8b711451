"""Value types shared by the relay components."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum, Flag
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from tools.base import ToolRegistry

EXTENSION_TOOL_RESPONSE = "extension.middle_tier_tool_response"


class MessageType(str, Enum):
    """Realtime message tags the relay reacts to.

    Anything outside this set is forwarded unchanged.
    """

    SESSION_UPDATE = "session.update"
    SESSION_CREATED = "session.created"
    OUTPUT_ITEM_ADDED = "response.output_item.added"
    OUTPUT_ITEM_DONE = "response.output_item.done"
    CONVERSATION_ITEM_CREATED = "conversation.item.created"
    FUNCTION_CALL_ARGUMENTS_DELTA = "response.function_call_arguments.delta"
    FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"
    RESPONSE_DONE = "response.done"
    RESPONSE_CREATE = "response.create"
    CONVERSATION_ITEM_CREATE = "conversation.item.create"
    AUDIO_DELTA = "response.audio.delta"
    SPEECH_STARTED = "input_audio_buffer.speech_started"
    INPUT_AUDIO_APPEND = "input_audio_buffer.append"
    INPUT_TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
    AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
    ERROR = "error"

    @classmethod
    def from_tag(cls, tag: object) -> MessageType | None:
        try:
            return cls(tag)
        except ValueError:
            return None


class ToolResultDirection(Flag):
    TO_SERVER = 1
    TO_CLIENT = 2


@dataclass(frozen=True)
class ToolResult:
    """Output of a tool handler and where it should be delivered."""

    text: str | dict[str, Any] | list[Any] | None
    destination: ToolResultDirection = ToolResultDirection.TO_SERVER

    def to_text(self) -> str:
        if self.text is None:
            return ""
        if isinstance(self.text, str):
            return self.text
        return json.dumps(self.text, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class PendingToolCall:
    call_id: str
    previous_item_id: str | None


@dataclass(slots=True)
class RelayCounters:
    """Per-session anomaly counters, logged when the session ends."""

    malformed_messages: int = 0
    unresolved_tool_calls: int = 0
    abandoned_tool_calls: int = 0
    tool_failures: int = 0
    delivery_failures: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "malformed_messages": self.malformed_messages,
            "unresolved_tool_calls": self.unresolved_tool_calls,
            "abandoned_tool_calls": self.abandoned_tool_calls,
            "tool_failures": self.tool_failures,
            "delivery_failures": self.delivery_failures,
        }


@dataclass(frozen=True)
class SessionConfig:
    """Resolved per-session settings. Never mutated after construction."""

    endpoint: str
    deployment: str
    tools: ToolRegistry
    api_version: str = "2024-10-01-preview"
    voice: str | None = None
    system_message: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    disable_audio: bool | None = None
    model: str | None = None
    onboarding_instructions: str = ""
