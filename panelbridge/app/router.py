# panelbridge/app/router.py
from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Dict, Optional, Union

from panelbridge.model.joins import ActionKind, JoinAction, JoinTable
from panelbridge.model.signal import SignalKind, UISignal
from panelbridge.protocol.responses import classify_reply
from panelbridge.runtime.device_session import DeviceSession
from panelbridge.runtime.events import DataReceived, SessionEvent, StateChanged
from panelbridge.runtime.feedback import FeedbackChange, UIFeedbackState

RouterEvent = Union[UISignal, SessionEvent]

_STOP = object()


class SignalRouter:
    """
    Routes panel signals and device session events into feedback updates and
    device commands.

    Both sources are fanned into one queue and handled by a single dispatcher
    thread, so the router is the only writer of the feedback state. Hosts that
    already run their own single event thread may call handle() directly
    instead of start().
    """

    def __init__(
        self,
        *,
        session: DeviceSession,
        joins: JoinTable,
        feedback: Optional[UIFeedbackState] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._session = session
        self._proto = session.protocol
        self._joins = joins
        self._log = logger or logging.getLogger(__name__)
        self._fb = feedback or UIFeedbackState(logger=self._log)

        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

        self._actions: Dict[ActionKind, Callable[[JoinAction], None]] = {
            ActionKind.NAVIGATE: self._navigate,
            ActionKind.TOGGLE: self._toggle,
            ActionKind.MOMENTARY: self._momentary,
            ActionKind.INTERLOCK: self._interlock,
            ActionKind.CONNECT: lambda action: self._session.connect(),
            ActionKind.DISCONNECT: lambda action: self._session.disconnect(),
            ActionKind.COMMAND: self._command,
        }

    @property
    def feedback(self) -> UIFeedbackState:
        return self._fb

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ---------------- Lifecycle ----------------
    def start(self) -> None:
        if self.is_running:
            return

        # current state is queued ahead of any later transition
        self._unsubscribe = self._session.subscribe(self.submit, replay_state=True)

        self._thread = threading.Thread(target=self._run, name="panelbridge-router", daemon=True)
        self._thread.start()
        self._log.info("ROUTER_STARTED panel_joins=%d device_joins=%d", len(self._joins.panel), len(self._joins.device))

    def stop(self, timeout: float = 2.0) -> None:
        if self._unsubscribe is not None:
            try:
                self._unsubscribe()
            finally:
                self._unsubscribe = None

        thread, self._thread = self._thread, None
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join(timeout=timeout)
        if thread.is_alive():
            self._log.warning("ROUTER_STOP_TIMEOUT timeout_s=%.2f", timeout)
        else:
            self._log.info("ROUTER_STOPPED")

    # ---------------- Input ----------------
    def submit(self, event: RouterEvent) -> None:
        """Queue a panel signal or session event for the dispatcher thread."""
        self._queue.put(event)

    def wait_idle(self) -> None:
        """Block until every event queued so far has been handled."""
        self._queue.join()

    def handle(self, event: RouterEvent) -> None:
        if isinstance(event, UISignal):
            self._on_signal(event)
        elif isinstance(event, StateChanged):
            self._on_state(event)
        elif isinstance(event, DataReceived):
            self._on_data(event)
        else:
            raise TypeError(f"Unsupported router event {type(event).__name__}")

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self.handle(event)
            except Exception:
                self._log.exception("ROUTER_EVENT_ERROR event=%r", event)
            finally:
                self._queue.task_done()

    # ---------------- Panel signals ----------------
    def _on_signal(self, signal: UISignal) -> None:
        if signal.kind is not SignalKind.BOOL:
            self._log.debug("SIGNAL_IGNORED join=%d kind=%s", signal.number, signal.kind.value)
            return

        number = signal.number
        pressed = signal.is_press

        # momentary joins follow both edges
        if self._joins.follows_release(number):
            self._fb.set_bool(number, pressed)

        if not pressed:
            return

        actions = self._joins.lookup(number)
        if not actions:
            self._log.debug("SIGNAL_UNMAPPED join=%d", number)
            return

        for action in actions:
            self._log.debug("SIGNAL_ACTION join=%d action=%s", number, action.kind.value)
            self._actions[action.kind](action)

    def _navigate(self, action: JoinAction) -> None:
        self._fb.apply([
            FeedbackChange(SignalKind.BOOL, action.join, True),
            FeedbackChange(SignalKind.BOOL, action.join, False),
            FeedbackChange(SignalKind.STRING, self._joins.feedback.page_title, action.label or ""),
        ])

    def _toggle(self, action: JoinAction) -> None:
        self._fb.toggle(action.join)

    def _momentary(self, action: JoinAction) -> None:
        # already mirrored in _on_signal
        return None

    def _interlock(self, action: JoinAction) -> None:
        self._fb.set_bools({j: j == action.join for j in action.group})

    def _command(self, action: JoinAction) -> None:
        if action.command is None:
            raise ValueError(f"Command join {action.join} has no command name")
        if not self._session.send(self._proto.encode_command(action.command)):
            self._log.info("COMMAND_NOT_SENT join=%d command=%s state=%s",
                           action.join, action.command, self._session.state.value)

    # ---------------- Session events ----------------
    def _on_state(self, event: StateChanged) -> None:
        fb = self._joins.feedback
        self._fb.set_bools({fb.connected: event.connected, fb.disconnected: not event.connected})

    def _on_data(self, event: DataReceived) -> None:
        fb = self._joins.feedback
        raw = event.raw

        changes = [FeedbackChange(SignalKind.STRING, fb.rx_text, raw)]

        match = classify_reply(raw, self._proto.replies)
        if match.power is not None:
            changes.append(FeedbackChange(SignalKind.BOOL, fb.power_on, match.power))
            changes.append(FeedbackChange(SignalKind.BOOL, fb.power_off, not match.power))
        if match.lamp_hours is not None:
            changes.append(FeedbackChange(SignalKind.STRING, fb.lamp_hours, match.lamp_hours))

        self._fb.apply(changes)
