from __future__ import annotations

import pytest

from panelbridge.core.context import default_metadata_dir
from panelbridge.protocol.core.defs import Protocol
from panelbridge.protocol.core.frame import FramedMessage
from panelbridge.protocol.core.parser import FrameParser
from panelbridge.protocol.loader import ProtocolLoader


def _proto() -> Protocol:
    pl = ProtocolLoader(default_metadata_dir() / "protocol")
    pl.load_all()
    return Protocol(pl)


def test_encode_command_matches_wire_layout():
    proto = _proto()
    assert proto.encode_command("power_on") == b"\x02\x01\x00\x00PON\x00\x00\x00\x03"
    assert proto.encode_command("lamp_hours") == b"\x02\x01\x00\x00LH?\x00\x00\x00\x03"


def test_encoded_payload_parses_back_to_same_text():
    proto = _proto()
    parser = FrameParser(proto)

    parser.feed(proto.encode_payload("PON"))
    frame = parser.get_frame()

    assert frame is not None
    assert frame.payload == "PON"
    assert frame.header == proto.header
    assert frame.raw == proto.encode_payload("PON")


def test_from_body_without_header_keeps_text():
    proto = _proto()
    frame = FramedMessage.from_body(proto, b"LH?4821")

    assert frame.payload == "LH?4821"
    assert frame.header == b""
    assert frame.raw == b"\x02LH?4821\x03"


def test_from_body_strips_trailing_nul_padding_only():
    proto = _proto()
    frame = FramedMessage.from_body(proto, b"\x00POF\x00\x00")
    assert frame.payload == "\x00POF"


def test_non_ascii_bytes_are_replaced_not_rejected():
    proto = _proto()
    frame = FramedMessage.from_body(proto, b"P\xffN")
    assert frame.payload == "P\ufffdN"


def test_encode_rejects_delimiters_in_payload():
    proto = _proto()
    with pytest.raises(ValueError):
        proto.encode_payload("A\x03B")
    with pytest.raises(ValueError):
        proto.encode_payload(b"\x02")
