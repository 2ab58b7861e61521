# panelbridge/runtime/events.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class StateChanged:
    """Session connected (True) or dropped / failed to connect (False)."""
    connected: bool


@dataclass(frozen=True)
class DataReceived:
    """Payload of one complete frame from the device."""
    raw: str


SessionEvent = Union[StateChanged, DataReceived]
SessionCallback = Callable[[SessionEvent], None]
