"""
Async persistence adapter used by the ingestion pipeline.

Each operation opens its own session and runs the synchronous service in a
worker thread, so the event loop keeps dispatching while a write is in
flight. The store's own atomicity is the only concurrency control.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional
from uuid import UUID

from whatsterm.db import DatabaseManager
from whatsterm.schemas.conversation import MessageCreate, MessageRead
from whatsterm.services.conversation_service import ConversationService
from whatsterm.services.message_service import MessageService


class PersistenceStore:
    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager = db_manager

    async def upsert_conversation(
        self, participant_id: str, seen_at: Optional[datetime] = None
    ) -> UUID:
        return await asyncio.to_thread(
            self._upsert_conversation, participant_id, seen_at
        )

    async def append_message(
        self, conversation_id: UUID, record: MessageCreate
    ) -> MessageRead:
        return await asyncio.to_thread(self._append_message, conversation_id, record)

    def _upsert_conversation(
        self, participant_id: str, seen_at: Optional[datetime]
    ) -> UUID:
        with self.db_manager.db_session() as db:
            return ConversationService(db).upsert_conversation(participant_id, seen_at)

    def _append_message(self, conversation_id: UUID, record: MessageCreate) -> MessageRead:
        with self.db_manager.db_session() as db:
            message = MessageService(db).append_message(conversation_id, record)
            return MessageRead.model_validate(message)
