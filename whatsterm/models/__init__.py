from whatsterm.models.conversation import Conversation
from whatsterm.models.message import Message

__all__ = [
    "Conversation",
    "Message",
]
