# protocol/core/__init__.py

from .defs import Protocol, ReplyTokens
from .frame import FramedMessage
from .parser import FrameParser

__all__ = [
    "Protocol", "ReplyTokens",
    "FramedMessage",
    "FrameParser",
]
