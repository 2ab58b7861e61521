# panelbridge/protocol/core/frame.py
from __future__ import annotations

from dataclasses import dataclass

from .defs import Protocol


@dataclass(frozen=True)
class FramedMessage:
    """
    One STX..ETX frame received from the projector.

    `payload` is the ASCII text between the delimiters with the fixed command
    header and trailing NUL padding removed. `raw` keeps the frame exactly as
    it arrived, delimiters included.
    """
    payload: str
    header: bytes = b""
    raw: bytes = b""

    @classmethod
    def from_body(cls, proto: Protocol, body: bytes) -> "FramedMessage":
        header = b""
        if proto.header and body.startswith(proto.header):
            header = proto.header
            body = body[len(header):]

        text = body.rstrip(b"\x00").decode("ascii", errors="replace")
        return cls(
            payload=text,
            header=header,
            raw=proto.stx + header + body + proto.etx,
        )
