# panelbridge/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class SessionStatus:
    """
    A snapshot of the device session, safe to share across threads.
    """
    state: ConnectionState
    driver: str
    endpoint: str
    last_error: Optional[str] = None
    last_error_code: Optional[str] = None
    frames_rx: int = 0
    frames_tx: int = 0
    bytes_rx: int = 0

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED
