"""Chat-socket seam: socket protocol, auth state and QR rendering."""

from whatsterm.channels.auth_state import AuthState, use_multi_file_auth_state
from whatsterm.channels.base import (
    CONNECTION_UPDATE,
    CREDS_UPDATE,
    MESSAGES_UPSERT,
    ChatSocket,
    SocketFactory,
)
from whatsterm.channels.qr import QRRenderer

__all__ = [
    "AuthState",
    "CONNECTION_UPDATE",
    "CREDS_UPDATE",
    "ChatSocket",
    "MESSAGES_UPSERT",
    "QRRenderer",
    "SocketFactory",
    "use_multi_file_auth_state",
]
