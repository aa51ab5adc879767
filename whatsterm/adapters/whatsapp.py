"""
WhatsApp platform adapter.

Reads the message events delivered by the chat socket in messages.upsert
(key.remoteJid, key.fromMe, message, messageTimestamp, pushName).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic_core import to_jsonable_python

from whatsterm.adapters.base import BasePlatformAdapter
from whatsterm.schemas.whatsapp import InboundMessage

# Containers whose inner "message" holds the actual content
WRAPPER_KEYS = (
    "ephemeralMessage",
    "viewOnceMessage",
    "viewOnceMessageV2",
    "viewOnceMessageV2Extension",
    "documentWithCaptionMessage",
)

# Message keys that carry no user content on their own
NON_CONTENT_KEYS = frozenset(
    {
        "protocolMessage",
        "reactionMessage",
        "senderKeyDistributionMessage",
        "messageContextInfo",
    }
)

CAPTION_KEYS = ("imageMessage", "videoMessage", "documentMessage")


def _first_text(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return None


class WhatsAppAdapter(BasePlatformAdapter):
    """WhatsApp adapter: normalize raw socket events for the pipeline."""

    def is_from_me(self, event: dict[str, Any]) -> bool:
        key = event.get("key") or {}
        return bool(key.get("fromMe"))

    def has_content(self, event: dict[str, Any]) -> bool:
        content = self.message_content(event)
        if not content:
            return False
        return any(key not in NON_CONTENT_KEYS for key in content)

    def participant_id(self, event: dict[str, Any]) -> Optional[str]:
        key = event.get("key") or {}
        jid = key.get("remoteJid")
        return jid if isinstance(jid, str) and jid else None

    def message_content(self, event: dict[str, Any]) -> dict[str, Any]:
        """The event's message dict with ephemeral/view-once wrappers removed."""
        content = event.get("message") or {}
        while isinstance(content, dict):
            for wrapper in WRAPPER_KEYS:
                inner = content.get(wrapper)
                if isinstance(inner, dict) and isinstance(inner.get("message"), dict):
                    content = inner["message"]
                    break
            else:
                return content
        return {}

    def extract_text(self, event: dict[str, Any]) -> Optional[str]:
        """Plain text first, then image/video/document captions."""
        content = self.message_content(event)
        extended = content.get("extendedTextMessage") or {}
        captions = [(content.get(key) or {}).get("caption") for key in CAPTION_KEYS]
        return _first_text(content.get("conversation"), extended.get("text"), *captions)

    def extract_timestamp(
        self, event: dict[str, Any], received_at: Optional[datetime] = None
    ) -> datetime:
        """messageTimestamp (seconds since epoch) as UTC; receive time if absent or out of range."""
        seconds = self._timestamp_seconds(event.get("messageTimestamp"))
        if seconds is not None:
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc)
            except (OverflowError, ValueError, OSError):
                pass
        return received_at or datetime.now(timezone.utc)

    @staticmethod
    def _timestamp_seconds(value: Any) -> Optional[float]:
        # protobuf longs arrive as {"low": ..., "high": ..., "unsigned": ...}
        if isinstance(value, dict):
            low = value.get("low")
            high = value.get("high") or 0
            if not isinstance(low, int):
                return None
            value = (high << 32) | (low & 0xFFFFFFFF)
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value) if value > 0 else None
        if isinstance(value, str) and value.isdigit():
            return float(value) or None
        return None

    def raw_payload(self, event: dict[str, Any]) -> dict[str, Any]:
        """JSON-safe copy of the full event (bytes as base64)."""
        return to_jsonable_python(event, bytes_mode="base64", fallback=str)

    def parse_event(
        self, event: dict[str, Any], received_at: Optional[datetime] = None
    ) -> InboundMessage:
        participant = self.participant_id(event)
        if participant is None:
            raise ValueError("WhatsApp event has no remoteJid")
        key = event.get("key") or {}
        return InboundMessage(
            participant_id=participant,
            message_id=key.get("id"),
            text=self.extract_text(event),
            push_name=event.get("pushName"),
            timestamp=self.extract_timestamp(event, received_at),
            raw=self.raw_payload(event),
        )
