"""Conversation model: one row per remote participant (JID)."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship

from whatsterm.db import Base
from whatsterm.models.mixins import TimestampMixin, utcnow


class Conversation(Base, TimestampMixin):
    """One row per participant. participant_id is unique so upserts cannot duplicate."""

    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id = Column(String(256), unique=True, nullable=False, index=True)
    last_activity_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    messages = relationship(
        "Message",
        back_populates="conversation",
        passive_deletes="all",
        order_by="Message.message_timestamp",
    )
