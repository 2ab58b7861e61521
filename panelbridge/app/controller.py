# panelbridge/app/controller.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from panelbridge.app.config import BridgeConfig
from panelbridge.app.router import SignalRouter
from panelbridge.core.context import Context
from panelbridge.interfaces.feedback_sink import FeedbackSink
from panelbridge.model.signal import UISignal
from panelbridge.runtime.device_session import DeviceSession
from panelbridge.runtime.feedback import FeedbackSnapshot, UIFeedbackState
from panelbridge.runtime.state import SessionStatus
from panelbridge.transport.factory import DeviceTransport


class BridgeController:
    """
    App-level owner of one projector session, its router and the panel feedback.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        context: Context,
        device_transport: DeviceTransport,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._log = logger or logging.getLogger(__name__)

        self._context = context
        self._device_transport = device_transport

        self._feedback = UIFeedbackState(logger=self._log)
        self._session = DeviceSession(
            proto=context.protocol,
            device_transport=device_transport,
            rx_chunk=config.rx_chunk,
            logger=self._log,
        )
        self._router = SignalRouter(
            session=self._session,
            joins=context.joins,
            feedback=self._feedback,
            logger=self._log,
        )

        self._sinks: List[Tuple[FeedbackSink, Callable[[], None]]] = []

    @property
    def context(self) -> Context:
        return self._context

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def session(self) -> DeviceSession:
        return self._session

    @property
    def router(self) -> SignalRouter:
        return self._router

    def add_sink(self, sink: FeedbackSink) -> None:
        if any(s is sink for s, _ in self._sinks):
            return
        self._sinks.append((sink, self._feedback.subscribe(sink.on_feedback)))

    def remove_sink(self, sink: FeedbackSink) -> None:
        for entry in list(self._sinks):
            if entry[0] is sink:
                self._sinks.remove(entry)
                entry[1]()

    def start(self) -> None:
        self._log.info(
            "BRIDGE_START transport=%s endpoint=%s",
            self._device_transport.meta.name,
            self._device_transport.transport.describe(),
        )
        self._router.start()

    def stop(self) -> None:
        try:
            self._router.stop()
        except Exception:
            self._log.exception("ROUTER_STOP_ERROR")

        try:
            self._session.disconnect()
        except Exception:
            self._log.exception("SESSION_STOP_ERROR")

        for sink, unsubscribe in self._sinks:
            unsubscribe()
            try:
                sink.close()
            except Exception:
                self._log.exception("SINK_CLOSE_ERROR")
        self._sinks.clear()

    def __enter__(self) -> "BridgeController":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # panel input
    def signal(self, signal: UISignal) -> None:
        self._router.submit(signal)

    def press(self, number: int) -> None:
        self._router.submit(UISignal.press(number))

    def release(self, number: int) -> None:
        self._router.submit(UISignal.release(number))

    def tap(self, number: int) -> None:
        self.press(number)
        self.release(number)

    def wait_idle(self) -> None:
        self._router.wait_idle()

    # passthrough reads
    def status(self) -> SessionStatus:
        return self._session.status()

    def feedback(self) -> FeedbackSnapshot:
        return self._feedback.snapshot()
