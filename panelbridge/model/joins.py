# panelbridge/model/joins.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Tuple


class ActionKind(str, Enum):
    # panel (local feedback) actions
    NAVIGATE = "navigate"
    TOGGLE = "toggle"
    MOMENTARY = "momentary"
    INTERLOCK = "interlock"
    # device session actions
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    COMMAND = "command"


PANEL_ACTIONS = frozenset({ActionKind.NAVIGATE, ActionKind.TOGGLE, ActionKind.MOMENTARY, ActionKind.INTERLOCK})
DEVICE_ACTIONS = frozenset({ActionKind.CONNECT, ActionKind.DISCONNECT, ActionKind.COMMAND})


@dataclass(frozen=True)
class JoinAction:
    """
    Static behaviour bound to one panel join.

    label: page title shown for NAVIGATE.
    group: every member of the INTERLOCK group, this join included.
    command: protocol command name for COMMAND.
    """
    join: int
    kind: ActionKind
    label: Optional[str] = None
    group: Tuple[int, ...] = ()
    command: Optional[str] = None


@dataclass(frozen=True)
class FeedbackJoins:
    """Output joins written by the router."""
    connected: int = 20
    disconnected: int = 21
    power_on: int = 22
    power_off: int = 23
    page_title: int = 1
    rx_text: int = 2
    lamp_hours: int = 3


@dataclass(frozen=True)
class JoinTable:
    panel: Mapping[int, JoinAction] = field(default_factory=dict)
    device: Mapping[int, JoinAction] = field(default_factory=dict)
    feedback: FeedbackJoins = field(default_factory=FeedbackJoins)

    def lookup(self, number: int) -> List[JoinAction]:
        """Panel action first, then device action; either may be absent."""
        return [a for a in (self.panel.get(number), self.device.get(number)) if a is not None]

    def follows_release(self, number: int) -> bool:
        action = self.panel.get(number)
        return action is not None and action.kind is ActionKind.MOMENTARY

    def commands(self) -> Iterable[str]:
        return [a.command for a in self.device.values() if a.command is not None]
