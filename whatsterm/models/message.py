"""
Message model: one row per recorded chat message.

Rows are immutable; there is no update or delete path.
"""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from whatsterm.db import Base
from whatsterm.models.mixins import utcnow


class Message(Base):
    """Single message in a conversation; direction is 'incoming' or 'outgoing'."""

    __tablename__ = "messages"

    __table_args__ = (
        Index(
            "ix_messages_conversation_timestamp",
            "conversation_id",
            "message_timestamp",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid,
        ForeignKey("conversations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    direction = Column(String(16), nullable=False)  # 'incoming' | 'outgoing'
    text = Column(Text, nullable=True)  # None for non-text content
    raw_payload = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    message_timestamp = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
