"""WhatsApp ingestion service: records live conversations and messages."""

__version__ = "0.1.0"
