# panelbridge/model/signal.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class SignalKind(str, Enum):
    BOOL = "bool"
    STRING = "string"
    NUMERIC = "numeric"


SignalValue = Union[bool, str, int]


@dataclass(frozen=True)
class UISignal:
    """
    One input event from the touch panel.

    number: join identifier on the panel.
    kind: join type; only BOOL joins drive behaviour today.
    value: True/False for BOOL, text for STRING, integer for NUMERIC.
    """
    number: int
    kind: SignalKind
    value: SignalValue

    @classmethod
    def press(cls, number: int) -> "UISignal":
        return cls(int(number), SignalKind.BOOL, True)

    @classmethod
    def release(cls, number: int) -> "UISignal":
        return cls(int(number), SignalKind.BOOL, False)

    @property
    def is_press(self) -> bool:
        return self.kind is SignalKind.BOOL and bool(self.value)
