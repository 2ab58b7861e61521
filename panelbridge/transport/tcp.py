# panelbridge/transport/tcp.py
from __future__ import annotations

import select
import socket
from typing import Optional

from .base import Transport
from .errors import TransportClosedError, TransportIOError, TransportOpenError


class TCPTransport(Transport):
    """
    Plain TCP client transport (serial-over-TCP projector control port).

    read(n) waits at most `timeout` seconds for data and returns b"" when nothing
    arrived, so a reader loop can notice a stop request promptly. Writes block for
    at most `write_timeout_s` so a dead peer fails fast instead of hanging.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 55555,
        timeout: float = 0.05,
        connect_timeout_s: float = 3.0,
        write_timeout_s: float = 1.0,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.connect_timeout_s = connect_timeout_s
        self.write_timeout_s = write_timeout_s
        self.sock: Optional[socket.socket] = None

    def describe(self) -> str:
        return f"{self.host}:{self.port}"

    def open(self) -> None:
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout_s)
        except OSError as e:
            self.sock = None
            raise TransportOpenError(f"TCP connect to {self.describe()} failed: {e}") from None

        sock.settimeout(self.write_timeout_s)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self.sock = sock

    def close(self) -> None:
        sock, self.sock = self.sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # already reset by peer or never fully connected
            pass
        finally:
            sock.close()

    def is_open(self) -> bool:
        return self.sock is not None

    def read(self, n: int) -> bytes:
        sock = self.sock
        if sock is None:
            raise TransportIOError("read while transport not open")

        try:
            ready, _, _ = select.select([sock], [], [], self.timeout)
            if not ready:
                return b""
            data = sock.recv(n)
        except (OSError, ValueError) as e:
            # ValueError: socket closed by another thread (fileno() == -1)
            raise TransportIOError(f"TCP read failed: {e}") from None

        if not data:
            raise TransportClosedError(f"connection closed by {self.describe()}")
        return data

    def write(self, data: bytes) -> int:
        sock = self.sock
        if sock is None:
            raise TransportIOError("write while transport not open")

        try:
            sock.sendall(data)
        except OSError as e:
            raise TransportIOError(f"TCP write failed: {e}") from None
        return len(data)
