from __future__ import annotations

import asyncio
from dataclasses import replace

from fakes import function_call_created, function_call_done
from relay.pending import PendingCallTracker
from relay.schemas import RelayCounters
from relay.transformer import MessageTransformer


def _make(config):
    tracker = PendingCallTracker()
    counters = RelayCounters()
    return MessageTransformer(config, tracker, counters), tracker, counters


def test_session_created_injects_onboarding_and_tools(session_config):
    transformer, _, _ = _make(session_config)
    message = {"type": "session.created", "session": {"id": "sess_1", "instructions": "", "tools": []}}

    decision = asyncio.run(transformer.to_client(message))

    session = decision.forward["session"]
    assert session["id"] == "sess_1"
    assert session["instructions"] == "Say hello and ask for the caller's name."
    assert session["tools"][0]["name"] == "referToMedicalDatabase"
    assert session["tool_choice"] == "auto"
    assert session["voice"] == "alloy"
    assert decision.tool_call is None


def test_function_call_output_item_added_is_suppressed(session_config):
    transformer, _, _ = _make(session_config)
    message = {"type": "response.output_item.added", "item": {"type": "function_call", "call_id": "c1"}}

    decision = asyncio.run(transformer.to_client(message))

    assert decision.forward is None


def test_message_output_item_added_is_forwarded(session_config):
    transformer, _, _ = _make(session_config)
    message = {"type": "response.output_item.added", "item": {"type": "message"}}

    decision = asyncio.run(transformer.to_client(message))

    assert decision.forward is message


def test_duplicate_function_call_creation_is_tracked_once(session_config):
    transformer, tracker, _ = _make(session_config)

    async def scenario():
        first = await transformer.to_client(function_call_created("call_1"))
        size_after_first = len(tracker)
        second = await transformer.to_client(function_call_created("call_1"))
        return first, second, size_after_first

    first, second, size_after_first = asyncio.run(scenario())

    assert first.forward is None
    assert second.forward is None
    assert size_after_first == 1
    assert len(tracker) == 1


def test_function_call_output_echo_is_suppressed(session_config):
    transformer, tracker, _ = _make(session_config)
    message = {
        "type": "conversation.item.created",
        "item": {"type": "function_call_output", "call_id": "call_1", "output": "done"},
    }

    decision = asyncio.run(transformer.to_client(message))

    assert decision.forward is None
    assert len(tracker) == 0


def test_argument_events_are_suppressed(session_config):
    transformer, _, _ = _make(session_config)

    async def scenario():
        delta = await transformer.to_client({"type": "response.function_call_arguments.delta", "delta": "{"})
        done = await transformer.to_client({"type": "response.function_call_arguments.done", "arguments": "{}"})
        return delta, done

    delta, done = asyncio.run(scenario())

    assert delta.forward is None
    assert done.forward is None


def test_function_call_done_yields_tool_call(session_config):
    transformer, _, _ = _make(session_config)
    message = function_call_done("call_1", "referToMedicalDatabase", {"user_query": "lab results"})

    decision = asyncio.run(transformer.to_client(message))

    assert decision.forward is None
    assert decision.tool_call.call_id == "call_1"
    assert decision.tool_call.name == "referToMedicalDatabase"
    assert decision.tool_call.arguments == '{"user_query": "lab results"}'


def test_response_done_with_pending_calls_requests_one_continuation(session_config):
    transformer, tracker, counters = _make(session_config)

    async def scenario():
        await transformer.to_client(function_call_created("call_1"))
        await transformer.to_client(function_call_created("call_2"))
        return await transformer.to_client({"type": "response.done", "response": {"output": []}})

    decision = asyncio.run(scenario())

    assert len(tracker) == 0
    assert decision.request_continuation is True
    assert counters.abandoned_tool_calls == 2


def test_response_done_without_calls_needs_no_continuation(session_config):
    transformer, _, _ = _make(session_config)
    message = {"type": "response.done", "response": {"status": "completed", "output": [{"type": "message"}]}}

    decision = asyncio.run(transformer.to_client(message))

    assert decision.request_continuation is False
    assert decision.forward is message


def test_response_done_strips_function_call_items(session_config):
    transformer, _, _ = _make(session_config)
    message = {
        "type": "response.done",
        "response": {
            "output": [
                {"type": "message", "id": "m1"},
                {"type": "function_call", "call_id": "call_1"},
                {"type": "message", "id": "m2"},
            ]
        },
    }

    decision = asyncio.run(transformer.to_client(message))

    assert [item["id"] for item in decision.forward["response"]["output"]] == ["m1", "m2"]
    assert decision.forward != message
    assert len(message["response"]["output"]) == 3


def test_unknown_messages_are_forwarded(session_config):
    transformer, _, _ = _make(replace(session_config, voice=None))
    message = {"type": "response.audio_transcript.delta", "delta": "Hel"}

    decision = asyncio.run(transformer.to_client(message))

    assert decision.forward is message
    assert decision.tool_call is None
    assert decision.request_continuation is False
