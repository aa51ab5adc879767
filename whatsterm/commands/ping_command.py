"""
Command to answer the /ping health check.

Command traffic is answered directly over the socket and never persisted.
"""

from __future__ import annotations

import logging
from typing import Optional

from whatsterm.channels.base import ChatSocket

PING_COMMAND = "/ping"
PONG_REPLY = "pong"


class PingCommand:
    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)

    def matches(self, text: Optional[str]) -> bool:
        return text == PING_COMMAND

    async def execute(self, socket: ChatSocket, participant_id: str) -> None:
        """Reply pong to the sender."""
        await socket.send_text(participant_id, PONG_REPLY)
        self.logger.info("Answered %s from %s", PING_COMMAND, participant_id)
