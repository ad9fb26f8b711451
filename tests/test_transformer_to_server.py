from __future__ import annotations

from dataclasses import replace

from relay.pending import PendingCallTracker
from relay.schemas import RelayCounters
from relay.transformer import MessageTransformer
from tools.base import ToolRegistry


def _transformer(config):
    return MessageTransformer(config, PendingCallTracker(), RelayCounters())


def test_session_update_uses_system_message_override(session_config):
    config = replace(session_config, system_message="You only talk about appointments.")
    message = {"type": "session.update", "session": {"instructions": "Client instructions"}}

    out = _transformer(config).to_server(message)

    assert out["session"]["instructions"] == "You only talk about appointments."
    assert message["session"]["instructions"] == "Client instructions"


def test_session_update_keeps_client_instructions_without_override(session_config):
    message = {"type": "session.update", "session": {"instructions": "Client instructions"}}

    out = _transformer(session_config).to_server(message)

    assert out["session"]["instructions"] == "Client instructions"


def test_session_update_applies_configured_values_and_tools(session_config):
    config = replace(session_config, temperature=0.7, max_tokens=512, disable_audio=True, voice="shimmer")
    message = {
        "type": "session.update",
        "session": {"voice": "echo", "turn_detection": {"type": "server_vad"}, "temperature": 1.0},
    }

    session = _transformer(config).to_server(message)["session"]

    assert session["temperature"] == 0.7
    assert session["max_response_output_tokens"] == 512
    assert session["disable_audio"] is True
    assert session["voice"] == "shimmer"
    assert session["turn_detection"] == {"type": "server_vad"}
    assert session["tool_choice"] == "auto"
    assert [tool["name"] for tool in session["tools"]] == ["referToMedicalDatabase"]


def test_session_update_leaves_unset_values_alone(session_config):
    config = replace(session_config, voice=None)
    message = {"type": "session.update", "session": {"voice": "echo", "temperature": 0.9}}

    session = _transformer(config).to_server(message)["session"]

    assert session["voice"] == "echo"
    assert session["temperature"] == 0.9
    assert "max_response_output_tokens" not in session
    assert "disable_audio" not in session


def test_tool_choice_is_none_without_tools(session_config):
    config = replace(session_config, tools=ToolRegistry())
    message = {"type": "session.update", "session": {}}

    session = _transformer(config).to_server(message)["session"]

    assert session["tool_choice"] == "none"
    assert session["tools"] == []


def test_session_update_without_session_object_gets_one(session_config):
    out = _transformer(session_config).to_server({"type": "session.update"})

    assert out["session"]["tool_choice"] == "auto"


def test_other_messages_pass_through_untouched(session_config):
    message = {"type": "input_audio_buffer.append", "audio": "AAAA"}

    out = _transformer(session_config).to_server(message)

    assert out is message
