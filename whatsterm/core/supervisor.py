"""
Connection supervisor: owns the socket lifecycle.

run() is a bounded loop: create a socket, wire it to a fresh EventChannel
and the ingestion pipeline, consume connection events until the socket
closes, then ask the ReconnectPolicy whether to build a new one.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from whatsterm.channels.auth_state import AuthState, SaveCreds
from whatsterm.channels.base import CREDS_UPDATE, ChatSocket, SocketFactory
from whatsterm.channels.qr import QRRenderer
from whatsterm.core.errors import StartupError
from whatsterm.core.event_channel import EventChannel
from whatsterm.core.pipeline import IngestionPipeline
from whatsterm.core.reconnect import ReconnectDecision, ReconnectPolicy
from whatsterm.infra.logging_config import get_logger
from whatsterm.schemas.whatsapp import ConnectionState, ConnectionUpdate, MessagesUpsert

logger = get_logger("supervisor")


class SupervisorExit(str, Enum):
    """Why run() returned."""

    LOGGED_OUT = "logged_out"
    MANUAL_INTERVENTION = "manual_intervention"
    RESTARTS_EXHAUSTED = "restarts_exhausted"


class ConnectionSupervisor:
    def __init__(
        self,
        socket_factory: SocketFactory,
        auth_state: AuthState,
        save_creds: SaveCreds,
        pipeline: IngestionPipeline,
        policy: Optional[ReconnectPolicy] = None,
        qr_renderer: Optional[QRRenderer] = None,
        protocol_version: Optional[str] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.socket_factory = socket_factory
        self.auth_state = auth_state
        self.save_creds = save_creds
        self.pipeline = pipeline
        self.policy = policy or ReconnectPolicy()
        self.qr_renderer = qr_renderer or QRRenderer()
        self.protocol_version = protocol_version
        self._sleep = sleep
        self.state = ConnectionState.CONNECTING
        self.sockets_created = 0

    async def run(self) -> SupervisorExit:
        """
        Supervise connections until a stop decision.

        Raises:
            StartupError: the very first socket could not be created.
        """
        try:
            socket = await self._create_socket()
        except Exception as e:
            raise StartupError(f"Could not create the WhatsApp socket: {e}") from e

        restarts = 0
        while True:
            status_code, opened = await self._serve(socket)
            if opened:
                restarts = 0

            decision = self.policy.decide(status_code)
            if decision is ReconnectDecision.STOP_LOGGED_OUT:
                logger.error(
                    "WhatsApp logged out (status %s); stop reconnecting. "
                    "Re-pair this device to resume.",
                    status_code,
                )
                return SupervisorExit.LOGGED_OUT
            if decision is ReconnectDecision.STOP_MANUAL:
                logger.warning(
                    "WhatsApp connection closed with status %s; not reconnecting "
                    "automatically, manual intervention may be required.",
                    status_code,
                )
                return SupervisorExit.MANUAL_INTERVENTION

            socket = None
            while socket is None:
                if not self.policy.allows(restarts):
                    logger.error(
                        "Giving up after %d consecutive restart(s)", restarts
                    )
                    return SupervisorExit.RESTARTS_EXHAUSTED
                delay = self.policy.backoff(restarts)
                restarts += 1
                logger.info(
                    "Restart required; reconnecting to WhatsApp in %.1fs "
                    "(attempt %d/%d)",
                    delay,
                    restarts,
                    self.policy.max_attempts,
                )
                # Zero delay still yields once so the previous connection unwinds
                await self._sleep(delay)
                try:
                    socket = await self._create_socket()
                except Exception as e:
                    logger.exception("Failed to recreate WhatsApp socket: %s", e)

    async def _create_socket(self) -> ChatSocket:
        self.state = ConnectionState.CONNECTING
        socket = self.socket_factory(self.auth_state, self.protocol_version)
        if inspect.isawaitable(socket):
            socket = await socket
        self.sockets_created += 1
        return socket

    async def _serve(self, socket: ChatSocket) -> tuple[Optional[int], bool]:
        """Run one connection until it closes; returns (status code, reached open)."""
        channel = EventChannel(connection_id=self.sockets_created)
        self.pipeline.attach(socket)
        channel.attach(socket)
        worker = asyncio.create_task(self._consume_messages(channel))
        try:
            result = await self._consume_control(channel)
        except BaseException:
            channel.close()
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
            raise
        channel.close()
        await worker
        await self._discard(socket)
        return result

    async def _consume_control(
        self, channel: EventChannel
    ) -> tuple[Optional[int], bool]:
        opened = False
        async for event in channel.control_events():
            if event.name == CREDS_UPDATE:
                self._save_creds(event.payload)
                continue

            try:
                update = ConnectionUpdate.model_validate(event.payload)
            except ValidationError as e:
                logger.warning("Ignoring malformed connection update: %s", e)
                continue

            if update.qr:
                self._render_qr(update.qr)
            if update.connection is ConnectionState.OPEN:
                self.state = ConnectionState.OPEN
                opened = True
                logger.info("WhatsApp socket connected and listening for messages.")
            elif update.connection is ConnectionState.CLOSE:
                self.state = ConnectionState.CLOSE
                return update.status_code, opened
        return None, opened

    async def _consume_messages(self, channel: EventChannel) -> None:
        async for event in channel.message_events():
            try:
                upsert = MessagesUpsert.model_validate(event.payload)
            except ValidationError as e:
                logger.warning("Ignoring malformed messages.upsert: %s", e)
                continue
            await self.pipeline.on_message_batch(upsert.messages, upsert.type)

    def _save_creds(self, update: Any) -> None:
        try:
            self.save_creds(update)
        except Exception as e:
            logger.exception("Failed to save WhatsApp credentials: %s", e)

    def _render_qr(self, pairing_code: str) -> None:
        try:
            self.qr_renderer.render(pairing_code)
        except Exception as e:
            logger.exception("Failed to render pairing QR: %s", e)

    async def _discard(self, socket: ChatSocket) -> None:
        try:
            await socket.close()
        except Exception as e:
            logger.debug("Error closing discarded socket: %s", e)
