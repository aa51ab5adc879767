from __future__ import annotations

from uuid import UUID


class WhatstermError(Exception):
    """Base class for errors raised by whatsterm."""


class StartupError(WhatstermError):
    """The service cannot start: bad configuration or no initial socket."""


class ReferentialIntegrityError(WhatstermError):
    """A message was appended to a conversation that does not exist."""

    def __init__(self, conversation_id: UUID) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation does not exist: {conversation_id}")


class SocketNotAttachedError(WhatstermError):
    """A reply was needed before any socket was attached to the pipeline."""
