"""
Per-connection channel between a chat socket and its two consumers.

The socket's callbacks only enqueue. The supervisor drains connection and
credential events; the ingestion worker drains message batches. Each queue
has a single consumer, so events of one kind are handled strictly in
delivery order, and a slow batch never delays a connection event.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator

from whatsterm.channels.base import (
    CONNECTION_UPDATE,
    CREDS_UPDATE,
    MESSAGES_UPSERT,
    ChatSocket,
)
from whatsterm.infra.logging_config import get_logger

logger = get_logger("event_channel")

_CLOSED = object()


@dataclass(frozen=True)
class SocketEvent:
    name: str
    payload: Any


class EventChannel:
    def __init__(self, connection_id: int = 0) -> None:
        self.connection_id = connection_id
        self._control: asyncio.Queue[Any] = asyncio.Queue()
        self._messages: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, socket: ChatSocket) -> None:
        """Subscribe to the socket's events."""
        for name in (CREDS_UPDATE, CONNECTION_UPDATE, MESSAGES_UPSERT):
            socket.on(name, self._publisher(name))

    def _publisher(self, name: str):
        def publish(payload: Any) -> None:
            self.publish(name, payload)

        return publish

    def publish(self, name: str, payload: Any) -> None:
        if self._closed:
            logger.debug(
                "Dropping %s for closed connection #%s", name, self.connection_id
            )
            return
        event = SocketEvent(name=name, payload=payload)
        if name == MESSAGES_UPSERT:
            self._messages.put_nowait(event)
        else:
            self._control.put_nowait(event)

    def close(self) -> None:
        """Stop accepting events. Already-queued events are still delivered."""
        if self._closed:
            return
        self._closed = True
        self._control.put_nowait(_CLOSED)
        self._messages.put_nowait(_CLOSED)

    async def control_events(self) -> AsyncIterator[SocketEvent]:
        async for event in self._drain(self._control):
            yield event

    async def message_events(self) -> AsyncIterator[SocketEvent]:
        async for event in self._drain(self._messages):
            yield event

    @staticmethod
    async def _drain(queue: asyncio.Queue[Any]) -> AsyncIterator[SocketEvent]:
        while True:
            event = await queue.get()
            if event is _CLOSED:
                return
            yield event
