"""Pydantic schemas for Conversation and Message."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel

MessageDirection = Literal["incoming", "outgoing"]


class MessageBase(BaseModel):
    """Base message fields."""

    direction: MessageDirection
    text: Optional[str] = None
    raw_payload: dict[str, Any]
    message_timestamp: datetime


class MessageCreate(MessageBase):
    """Schema for appending a message."""

    pass


class MessageRead(MessageBase):
    """Message as stored in DB."""

    id: UUID
    conversation_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}
