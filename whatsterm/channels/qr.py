"""Terminal rendering of pairing QR codes."""

from __future__ import annotations

import io
import sys
from typing import Optional, TextIO

import qrcode

from whatsterm.infra.logging_config import get_logger

logger = get_logger("qr")


class QRRenderer:
    """Print a pairing string as an ASCII QR code for the operator to scan."""

    def __init__(self, enabled: bool = True, out: Optional[TextIO] = None) -> None:
        self.enabled = enabled
        self.out = out

    def render(self, pairing_code: str) -> None:
        if not self.enabled:
            logger.info("Pairing QR received; terminal rendering is disabled")
            return
        qr = qrcode.QRCode(border=1)
        qr.add_data(pairing_code)
        qr.make(fit=True)
        buffer = io.StringIO()
        qr.print_ascii(out=buffer, invert=True)
        out = self.out or sys.stdout
        out.write("Scan this QR code with WhatsApp > Linked devices:\n")
        out.write(buffer.getvalue())
        out.flush()
