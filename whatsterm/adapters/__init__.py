"""Platform adapters for chat integrations."""

from whatsterm.adapters.base import BasePlatformAdapter
from whatsterm.adapters.whatsapp import WhatsAppAdapter

__all__ = ["BasePlatformAdapter", "WhatsAppAdapter"]
