# panelbridge/protocol/core/parser.py
from __future__ import annotations

import logging
from typing import Optional

from panelbridge.core.errors import ProtocolMismatchError

from .defs import Protocol
from .frame import FramedMessage


class FrameParser:
    """
    Incremental STX..ETX frame extractor.

    Bytes are buffered until an ETX closes the frame that the preceding STX
    opened; a complete frame is returned once and removed from the buffer.
    """

    def __init__(self, proto: Protocol, logger: Optional[logging.Logger] = None):
        self.proto = proto
        self.max_buffer = proto.max_buffer
        self.buffer = bytearray()
        self._log = logger or logging.getLogger(__name__)

    # ---------------- Public API ----------------
    def feed(self, data: bytes) -> None:
        """Feed raw bytes into the parser buffer."""
        self.buffer.extend(data)
        self._log.debug(
            "Parser fed %d bytes, buffer_len=%d",
            len(data),
            len(self.buffer),
        )

    def get_frame(self) -> Optional[FramedMessage]:
        """
        Return the next complete frame, or None if more bytes are needed.

        Raises ProtocolMismatchError (after discarding the buffer) when an
        unterminated frame grows beyond max_buffer.
        """
        if not self._sync_start():
            return None

        end = self.buffer.find(self.proto.etx, 1)
        if end < 0:
            if len(self.buffer) > self.max_buffer:
                dropped = len(self.buffer)
                self.buffer.clear()
                raise ProtocolMismatchError(
                    f"No frame end after {dropped} bytes; buffer discarded.",
                    hint="Peer is not speaking the STX/ETX projector protocol.",
                    details={"dropped": dropped, "max_buffer": self.max_buffer},
                )
            return None  # Wait for more bytes

        body = bytes(self.buffer[1:end])
        del self.buffer[: end + 1]

        frame = FramedMessage.from_body(self.proto, body)
        self._log.debug("Parsed frame payload=%r body_len=%d", frame.payload, len(body))
        return frame

    def reset(self) -> None:
        self.buffer.clear()

    # ---------------- Helpers ----------------
    def _sync_start(self) -> bool:
        """Discard bytes ahead of the first STX. Returns True if one is buffered."""
        idx = self.buffer.find(self.proto.stx)
        if idx < 0:
            if self.buffer:
                self._log.debug("Discarding %d bytes outside any frame", len(self.buffer))
                self.buffer.clear()
            return False
        if idx > 0:
            self._log.debug("Discarding %d bytes before STX", idx)
            del self.buffer[:idx]
        return True
