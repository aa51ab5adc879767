"""
Pydantic shapes for the chat-socket events whatsterm consumes.

Only the fields the service reads are declared; anything else the socket
sends is ignored here and kept verbatim in the raw payload.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectionState(str, Enum):
    """Connection status values carried by connection.update."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSE = "close"


class BatchKind(str, Enum):
    """messages.upsert batch type: live traffic vs. history replay."""

    NOTIFY = "notify"
    APPEND = "append"


def _field(obj: Any, name: str) -> Any:
    """Read name from a mapping or an object attribute."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class ConnectionUpdate(BaseModel):
    """Payload of connection.update. Every field is optional; updates are partial."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    connection: Optional[ConnectionState] = None
    # Kept unvalidated: the error is often an exception object, not a dict
    last_disconnect: Any = Field(None, alias="lastDisconnect")
    qr: Optional[str] = None
    is_new_login: Optional[bool] = Field(None, alias="isNewLogin")

    @property
    def status_code(self) -> Optional[int]:
        """lastDisconnect.error.output.statusCode, or None when it cannot be read."""
        error = _field(self.last_disconnect, "error")
        output = _field(error, "output")
        code = _field(output, "statusCode")
        if code is None:
            code = _field(output, "status_code")
        if isinstance(code, bool):
            return None
        if isinstance(code, int):
            return code
        if isinstance(code, str) and code.isdigit():
            return int(code)
        return None


class MessagesUpsert(BaseModel):
    """Payload of messages.upsert. Message events are left as raw dicts."""

    model_config = ConfigDict(extra="ignore")

    type: str
    messages: list[Any] = Field(default_factory=list)


class InboundMessage(BaseModel):
    """Normalized inbound message (adapter -> pipeline)."""

    participant_id: str
    message_id: Optional[str] = None
    text: Optional[str] = None
    push_name: Optional[str] = None
    timestamp: datetime
    raw: dict[str, Any]
