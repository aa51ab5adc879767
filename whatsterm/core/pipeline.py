"""
Ingestion pipeline: turns messages.upsert batches into stored messages.

Only live batches are recorded. Each event is handled on its own: a bad
event is logged and skipped, and the rest of the batch still runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from whatsterm.adapters.whatsapp import WhatsAppAdapter
from whatsterm.channels.base import ChatSocket
from whatsterm.commands.ping_command import PingCommand
from whatsterm.core.errors import ReferentialIntegrityError, SocketNotAttachedError
from whatsterm.schemas.conversation import MessageCreate
from whatsterm.schemas.whatsapp import BatchKind
from whatsterm.services.persistence_store import PersistenceStore

NON_TEXT_MARKER = "<non-text>"


@dataclass
class BatchReport:
    """Per-batch counters, for logs and tests."""

    persisted: int = 0
    skipped: int = 0
    commands: int = 0
    failed: int = 0


class IngestionPipeline:
    def __init__(
        self,
        store: PersistenceStore,
        adapter: Optional[WhatsAppAdapter] = None,
        ping_command: Optional[PingCommand] = None,
    ) -> None:
        self.store = store
        self.adapter = adapter or WhatsAppAdapter()
        self.ping_command = ping_command or PingCommand()
        self.logger = logging.getLogger(__name__)
        self._socket: Optional[ChatSocket] = None

    def attach(self, socket: ChatSocket) -> None:
        """Send command replies through socket from now on."""
        self._socket = socket

    async def on_message_batch(
        self, events: Sequence[Any], batch_kind: str
    ) -> BatchReport:
        report = BatchReport()
        if batch_kind != BatchKind.NOTIFY.value:
            self.logger.debug(
                "Skipping %s batch of %d message(s)", batch_kind, len(events)
            )
            report.skipped = len(events)
            return report

        for event in events:
            try:
                outcome = await self._process_event(event)
            except ReferentialIntegrityError as e:
                report.failed += 1
                self.logger.critical(
                    "Message stored before its conversation existed (%s); "
                    "upsert/append ordering or store consistency is broken",
                    e.conversation_id,
                )
            except Exception as e:
                report.failed += 1
                self.logger.exception("Error processing incoming WhatsApp message: %s", e)
            else:
                setattr(report, outcome, getattr(report, outcome) + 1)
        return report

    async def _process_event(self, event: dict[str, Any]) -> str:
        """Handle one event; returns the BatchReport counter it belongs to."""
        adapter = self.adapter
        if adapter.is_from_me(event):
            return "skipped"
        if not adapter.has_content(event):
            return "skipped"
        participant_id = adapter.participant_id(event)
        if participant_id is None:
            self.logger.debug("Ignoring message event without remoteJid")
            return "skipped"

        text = adapter.extract_text(event)
        if self.ping_command.matches(text):
            if self._socket is None:
                raise SocketNotAttachedError("No socket attached to answer commands")
            await self.ping_command.execute(self._socket, participant_id)
            return "commands"

        received_at = datetime.now(timezone.utc)
        inbound = adapter.parse_event(event, received_at=received_at)
        conversation_id = await self.store.upsert_conversation(
            inbound.participant_id, seen_at=received_at
        )
        await self.store.append_message(
            conversation_id,
            MessageCreate(
                direction="incoming",
                text=inbound.text,
                raw_payload=inbound.raw,
                message_timestamp=inbound.timestamp,
            ),
        )
        self.logger.info(
            "[WhatsApp] From: %s Text: %s Timestamp: %s",
            inbound.participant_id,
            inbound.text if inbound.text is not None else NON_TEXT_MARKER,
            inbound.timestamp.isoformat(),
        )
        return "persisted"
