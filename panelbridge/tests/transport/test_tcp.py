from __future__ import annotations

import socket

import pytest

from panelbridge.transport.errors import TransportClosedError, TransportIOError, TransportOpenError
from panelbridge.transport.tcp import TCPTransport


@pytest.fixture
def server():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    srv.settimeout(2.0)
    yield srv
    srv.close()


def _connect(server) -> tuple:
    host, port = server.getsockname()
    t = TCPTransport(host=host, port=port, timeout=0.2)
    t.open()
    peer, _ = server.accept()
    peer.settimeout(2.0)
    return t, peer


def test_open_write_read_roundtrip(server):
    t, peer = _connect(server)
    try:
        assert t.is_open() is True
        assert t.write(b"\x02PON\x03") == 5
        assert peer.recv(16) == b"\x02PON\x03"

        peer.sendall(b"\x02POF\x03")
        assert t.read(64) == b"\x02POF\x03"
    finally:
        peer.close()
        t.close()


def test_read_returns_empty_on_timeout(server):
    t, peer = _connect(server)
    try:
        assert t.read(64) == b""
    finally:
        peer.close()
        t.close()


def test_read_after_peer_close_raises_closed(server):
    t, peer = _connect(server)
    peer.close()
    try:
        with pytest.raises(TransportClosedError):
            for _ in range(10):
                t.read(64)
    finally:
        t.close()


def test_open_refused_raises_open_error():
    spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    spare.bind(("127.0.0.1", 0))
    port = spare.getsockname()[1]
    spare.close()

    t = TCPTransport(host="127.0.0.1", port=port, connect_timeout_s=0.5)
    with pytest.raises(TransportOpenError):
        t.open()
    assert t.is_open() is False


def test_read_write_not_open_raise():
    t = TCPTransport()
    with pytest.raises(TransportIOError):
        t.read(1)
    with pytest.raises(TransportIOError):
        t.write(b"x")


def test_close_is_idempotent(server):
    t, peer = _connect(server)
    t.close()
    t.close()
    peer.close()
    assert t.is_open() is False


def test_describe_is_host_port():
    assert TCPTransport(host="10.0.0.5", port=4352).describe() == "10.0.0.5:4352"
