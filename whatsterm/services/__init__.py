"""Persistence services for conversations and messages."""

from whatsterm.services.conversation_service import ConversationService
from whatsterm.services.message_service import MessageService
from whatsterm.services.persistence_store import PersistenceStore

__all__ = ["ConversationService", "MessageService", "PersistenceStore"]
