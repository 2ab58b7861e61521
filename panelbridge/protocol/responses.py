# panelbridge/protocol/responses.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.defs import ReplyTokens


@dataclass(frozen=True)
class ReplyMatch:
    """
    What a received payload says about the projector.

    power: True (on), False (standby) or None when the reply carries no power state.
    lamp_hours: extracted lamp-hours text, or None.
    """
    power: Optional[bool] = None
    lamp_hours: Optional[str] = None


def classify_reply(raw: str, tokens: ReplyTokens = ReplyTokens()) -> ReplyMatch:
    """
    Apply the reply rules to one received payload.

    A power-off reply takes precedence over a lamp-hours reply: a payload that
    contains both tokens only reports power off.
    """
    power: Optional[bool] = None
    lamp_hours: Optional[str] = None

    power_off = tokens.power_off in raw
    if tokens.power_on in raw:
        power = True
    elif power_off:
        power = False

    if not power_off and tokens.lamp_hours in raw:
        lamp_hours = extract_lamp_hours(raw, separator=tokens.value_separator)

    return ReplyMatch(power=power, lamp_hours=lamp_hours)


def extract_lamp_hours(raw: str, *, separator: str = "?", stx: str = "\x02", etx: str = "\x03") -> str:
    """
    Text after the first separator, with one leading STX and one trailing ETX removed.

    >>> extract_lamp_hours("\\x02LH?4821\\x03")
    '4821'
    """
    if raw.startswith(stx):
        raw = raw[len(stx):]
    if raw.endswith(etx):
        raw = raw[: -len(etx)]
    return raw[raw.find(separator) + 1:]
