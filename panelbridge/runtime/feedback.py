# panelbridge/runtime/feedback.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from panelbridge.model.signal import SignalKind

FeedbackValue = Union[bool, str]


@dataclass(frozen=True)
class FeedbackChange:
    """One output join written to the panel."""
    kind: SignalKind
    join: int
    value: FeedbackValue


@dataclass(frozen=True)
class FeedbackSnapshot:
    bools: Mapping[int, bool]
    strings: Mapping[int, str]

    def get_bool(self, join: int) -> bool:
        return self.bools.get(join, False)

    def get_string(self, join: int) -> str:
        return self.strings.get(join, "")


FeedbackListener = Callable[[FeedbackChange], None]


class UIFeedbackState:
    """
    Current value of every boolean and string output join.

    Unset joins read as False / "". A batch passed to apply() is stored under
    one lock, so readers never see half of an interlock or connection update.
    Listeners are called after the lock is released, in change order.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._bools: Dict[int, bool] = {}
        self._strings: Dict[int, str] = {}
        self._listeners: List[FeedbackListener] = []

    # --- reads ---
    def get_bool(self, join: int) -> bool:
        with self._lock:
            return self._bools.get(join, False)

    def get_string(self, join: int) -> str:
        with self._lock:
            return self._strings.get(join, "")

    def snapshot(self) -> FeedbackSnapshot:
        with self._lock:
            return FeedbackSnapshot(bools=dict(self._bools), strings=dict(self._strings))

    # --- writes ---
    def set_bool(self, join: int, value: bool) -> None:
        self.apply([FeedbackChange(SignalKind.BOOL, join, bool(value))])

    def set_string(self, join: int, value: str) -> None:
        self.apply([FeedbackChange(SignalKind.STRING, join, str(value))])

    def set_bools(self, values: Mapping[int, bool]) -> None:
        self.apply([FeedbackChange(SignalKind.BOOL, j, bool(v)) for j, v in values.items()])

    def toggle(self, join: int) -> bool:
        with self._lock:
            value = not self._bools.get(join, False)
            self._bools[join] = value
        self._notify([FeedbackChange(SignalKind.BOOL, join, value)])
        return value

    def apply(self, changes: Iterable[FeedbackChange]) -> None:
        changes = list(changes)
        for ch in changes:
            if ch.kind not in (SignalKind.BOOL, SignalKind.STRING):
                raise ValueError(f"Unsupported feedback kind {ch.kind!r}")

        with self._lock:
            for ch in changes:
                if ch.kind is SignalKind.BOOL:
                    self._bools[ch.join] = bool(ch.value)
                else:
                    self._strings[ch.join] = str(ch.value)
        self._notify(changes)

    # --- listeners ---
    def subscribe(self, cb: FeedbackListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(cb)

        def _unsubscribe() -> None:
            with self._lock:
                if cb in self._listeners:
                    self._listeners.remove(cb)

        return _unsubscribe

    def _notify(self, changes: List[FeedbackChange]) -> None:
        with self._lock:
            listeners = list(self._listeners)

        for ch in changes:
            for cb in listeners:
                try:
                    cb(ch)
                except Exception:
                    self._log.exception("FEEDBACK_LISTENER_ERROR join=%d", ch.join)
