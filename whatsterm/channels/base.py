from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from whatsterm.channels.auth_state import AuthState

CREDS_UPDATE = "creds.update"
CONNECTION_UPDATE = "connection.update"
MESSAGES_UPSERT = "messages.upsert"

EventHandler = Callable[[Any], None]


class ChatSocket(Protocol):
    """The narrow surface whatsterm needs from a chat-socket client."""

    def on(self, event: str, handler: EventHandler) -> None: ...
    async def send_text(self, jid: str, text: str) -> None: ...
    async def close(self) -> None: ...


class SocketFactory(Protocol):
    """Builds a new socket from stored auth state. May be sync or async."""

    def __call__(
        self, auth_state: AuthState, protocol_version: Optional[str]
    ) -> Union[ChatSocket, Awaitable[ChatSocket]]: ...
