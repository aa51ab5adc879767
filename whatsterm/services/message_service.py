"""
Service for appending messages to a conversation.

Messages are immutable; only insert. No update/delete of stored rows.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from whatsterm.core.errors import ReferentialIntegrityError
from whatsterm.models.conversation import Conversation
from whatsterm.models.message import Message
from whatsterm.schemas.conversation import MessageCreate


class MessageService:
    """Append messages. No update/delete (immutable)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def append_message(self, conversation_id: UUID, data: MessageCreate) -> Message:
        """
        Insert one message row for conversation_id.

        Raises:
            ReferentialIntegrityError: the conversation does not exist.
        """
        msg = Message(conversation_id=conversation_id, **data.model_dump())
        self.db.add(msg)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not self._conversation_exists(conversation_id):
                raise ReferentialIntegrityError(conversation_id) from e
            raise
        self.db.refresh(msg)
        return msg

    def _conversation_exists(self, conversation_id: UUID) -> bool:
        return (
            self.db.query(Conversation.id)
            .filter(Conversation.id == conversation_id)
            .first()
            is not None
        )
