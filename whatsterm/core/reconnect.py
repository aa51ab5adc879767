"""Decide what to do when the socket closes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from whatsterm.constants.disconnect_reason import DisconnectReason


class ReconnectDecision(str, Enum):
    RECONNECT = "reconnect"
    STOP_LOGGED_OUT = "stop_logged_out"
    STOP_MANUAL = "stop_manual"


@dataclass(frozen=True)
class ReconnectPolicy:
    """
    Reconnect only when the client asks for a restart (e.g. after pairing).

    Logged-out sessions need re-pairing and unknown failures need an operator,
    so both stop. max_attempts bounds consecutive restarts; backoff grows
    exponentially from backoff_seconds up to max_backoff_seconds, and a zero
    backoff means "next scheduler tick".
    """

    max_attempts: int = 5
    backoff_seconds: float = 0.0
    max_backoff_seconds: float = 30.0

    def decide(self, status_code: Optional[int]) -> ReconnectDecision:
        if status_code == DisconnectReason.RESTART_REQUIRED:
            return ReconnectDecision.RECONNECT
        if status_code == DisconnectReason.LOGGED_OUT:
            return ReconnectDecision.STOP_LOGGED_OUT
        return ReconnectDecision.STOP_MANUAL

    def backoff(self, attempt: int) -> float:
        """Delay before restart number attempt (0-based)."""
        if self.backoff_seconds <= 0:
            return 0.0
        return min(self.backoff_seconds * (2**attempt), self.max_backoff_seconds)

    def allows(self, attempt: int) -> bool:
        return attempt < self.max_attempts
