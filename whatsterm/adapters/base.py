"""
Platform adapter interface.

Adapters encapsulate platform-specific event shapes and expose a normalized
message format to the ingestion pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from whatsterm.schemas.whatsapp import InboundMessage


class BasePlatformAdapter(ABC):
    """Contract for platform adapters."""

    @abstractmethod
    def is_from_me(self, event: dict[str, Any]) -> bool:
        """True if the event echoes a message this account sent."""
        ...

    @abstractmethod
    def has_content(self, event: dict[str, Any]) -> bool:
        """False for acks, reactions and other events with no message body."""
        ...

    @abstractmethod
    def participant_id(self, event: dict[str, Any]) -> Optional[str]:
        """Remote participant identifier, or None for malformed/system events."""
        ...

    @abstractmethod
    def extract_text(self, event: dict[str, Any]) -> Optional[str]:
        """Best-effort text of the message, None for non-text content."""
        ...

    @abstractmethod
    def parse_event(
        self, event: dict[str, Any], received_at: Optional[datetime] = None
    ) -> InboundMessage:
        """Parse a raw event into a normalized inbound message. Raise ValueError if invalid."""
        ...
