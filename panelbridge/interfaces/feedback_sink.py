# panelbridge/interfaces/feedback_sink.py
from __future__ import annotations

from typing import Protocol

from panelbridge.runtime.feedback import FeedbackChange


class FeedbackSink(Protocol):
    """Panel-side consumer of output joins (touch panel driver, console, test recorder)."""
    def on_feedback(self, change: FeedbackChange) -> None: ...
    def close(self) -> None: ...
