"""Session bridge pumping messages between the caller and the realtime model."""

from __future__ import annotations

import asyncio
import json
import logging

from relay.connections import Connection
from relay.errors import MalformedMessageError, RelayError, ToolExecutionError
from relay.executor import ToolExecutor
from relay.pending import PendingCallTracker
from relay.schemas import MessageType, RelayCounters, SessionConfig
from relay.transformer import MessageTransformer, parse_message
from relay.transports import ClientTransport

LOGGER = logging.getLogger(__name__)


class RealtimeBridge:
    """Owns one caller transport and one upstream connection.

    ``run`` starts one task per direction and returns once either side has
    gone away, after closing both. All per-session state (pending calls,
    counters) lives here and is shared by the two tasks.
    """

    def __init__(
        self,
        config: SessionConfig,
        client: ClientTransport,
        upstream: Connection,
        *,
        counters: RelayCounters | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._upstream = upstream
        self.counters = counters or RelayCounters()
        self.tracker = PendingCallTracker()
        self._transformer = MessageTransformer(config, self.tracker, self.counters)
        self._executor = ToolExecutor(config.tools, self.tracker, self.counters)

    async def run(self) -> None:
        tasks: list[asyncio.Task[None]] = []
        try:
            await self._send_initial_messages()
            tasks = [
                asyncio.create_task(self._pump_client(), name="relay-client"),
                asyncio.create_task(self._pump_upstream(), name="relay-upstream"),
            ]
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self.close()

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                LOGGER.error("Relay task %s failed", task.get_name(), exc_info=task.exception())
        LOGGER.info("Relay session ended: %s", self.counters.as_dict())

    async def close(self) -> None:
        await asyncio.gather(
            self._client.connection.close(),
            self._upstream.close(),
            return_exceptions=True,
        )

    async def _send_initial_messages(self) -> None:
        for message in self._client.initial_messages():
            await self._upstream.send(json.dumps(self._transformer.to_server(message)))

    async def _pump_client(self) -> None:
        connection = self._client.connection
        while True:
            raw = await connection.receive()
            if raw is None:
                LOGGER.info("Client connection closed")
                return
            try:
                message = self._client.decode(raw)
            except MalformedMessageError as exc:
                self.counters.malformed_messages += 1
                LOGGER.warning("Dropping client frame: %s", exc.detail)
                continue
            if message is None:
                continue
            await self._upstream.send(json.dumps(self._transformer.to_server(message)))

    async def _pump_upstream(self) -> None:
        while True:
            raw = await self._upstream.receive()
            if raw is None:
                LOGGER.info("Upstream connection closed")
                return
            try:
                await self._handle_upstream(raw)
            except ToolExecutionError as exc:
                LOGGER.error("Tool %s failed; no output sent: %s", exc.tool_name, exc.detail, exc_info=exc.__cause__)
            except RelayError as exc:
                self.counters.malformed_messages += 1
                LOGGER.warning("Dropping upstream frame: %s", exc.detail)

    async def _handle_upstream(self, raw: str) -> None:
        message = parse_message(raw)
        decision = await self._transformer.to_client(message)

        if decision.tool_call is not None:
            await self._executor.execute(decision.tool_call, client=self._client, upstream=self._upstream)
        if decision.request_continuation:
            await self._upstream.send(json.dumps({"type": MessageType.RESPONSE_CREATE.value}))
        if decision.forward is not None:
            await self._client.deliver(decision.forward)
