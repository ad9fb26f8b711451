"""Domain-specific exceptions for the realtime relay."""

from __future__ import annotations


class RelayError(Exception):
    default_detail: str = "Relay error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class MalformedMessageError(RelayError):
    default_detail = "Message is not a JSON object with a type field."


class ToolExecutionError(RelayError):
    default_detail = "Tool execution failed."

    def __init__(self, detail: str | None = None, *, tool_name: str | None = None) -> None:
        super().__init__(detail)
        self.tool_name = tool_name


class UpstreamConnectError(RelayError):
    default_detail = "Could not connect to the realtime endpoint."


class DeliveryFailedError(RelayError):
    default_detail = "Client connection did not open in time."
