from .signal import SignalKind, UISignal
from .joins import ActionKind, FeedbackJoins, JoinAction, JoinTable
from .transport import TransportType
from .loader import MetadataLoader

__all__ = ["SignalKind",
           "UISignal",
           "ActionKind",
           "FeedbackJoins",
           "JoinAction",
           "JoinTable",
           "TransportType",
           "MetadataLoader"]
