# panelbridge/protocol/_internal/rx_worker.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional


class RxWorker(threading.Thread):
    """
    Thread that repeatedly calls `pump` until stopped.

    `pump` is expected to block for at most a short read timeout. An exception
    from `pump` is logged and the loop backs off briefly; it does not end the
    thread. Whoever owns the link decides when to stop.
    """

    def __init__(self, pump: Callable[[], None], *, name: str = "panelbridge-rx", logger: Optional[logging.Logger] = None):
        super().__init__(name=name, daemon=True)
        self._pump = pump
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._pump()
            except Exception:
                self._log.exception("RX_WORKER_EXCEPTION")
                self._stop_event.wait(0.01)

    def stop(self) -> None:
        self._stop_event.set()
