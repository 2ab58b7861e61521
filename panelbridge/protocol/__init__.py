# protocol/__init__.py

from .core import Protocol, ReplyTokens, FramedMessage, FrameParser
from .responses import ReplyMatch, classify_reply, extract_lamp_hours

__all__ = [
    "Protocol", "ReplyTokens",
    "FramedMessage", "FrameParser",
    "ReplyMatch", "classify_reply", "extract_lamp_hours",
]
