# panelbridge/transport/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """
    Abstract byte transport to the projector (TCP socket, RS-232 port).

    Contract:
      - open()/close() manage the underlying connection. close() is safe to call
        on a transport that is not open.
      - read(n) returns 0..n bytes. It returns b"" when no data arrived within the
        read timeout, and raises TransportIOError when the link is gone.
      - write(data) writes all of data or raises TransportIOError.
      - flush() forces pending output to be transmitted.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def read(self, n: int) -> bytes: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    def flush(self) -> None:
        return None

    def describe(self) -> str:
        """Short endpoint description for logs."""
        return type(self).__name__

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
