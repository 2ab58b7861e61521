# panelbridge/runtime/device_session.py
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from panelbridge.core.errors import (
    BridgeError,
    DeviceConnectError,
    DeviceDisconnectedError,
    ProtocolMismatchError,
)
from panelbridge.protocol.core import FrameParser, Protocol
from panelbridge.protocol._internal.rx_worker import RxWorker
from panelbridge.runtime.events import DataReceived, SessionCallback, SessionEvent, StateChanged
from panelbridge.runtime.state import ConnectionState, SessionStatus
from panelbridge.transport.errors import TransportError
from panelbridge.transport.factory import DeviceTransport


class DeviceSession:
    """
    Persistent connection to one projector.

    Owns the transport, frames outbound commands and parses inbound bytes.
    Subscribers receive StateChanged / DataReceived events. Transport failures
    never raise out of this class: they end in DISCONNECTED + StateChanged(False)
    and are kept as `status().last_error`. Reconnecting is up to the caller.

    Events are delivered while the session lock is held, so subscribers see
    them in transition order and never see data from a link that was already
    reported down. Callbacks must not block.
    """

    def __init__(
        self,
        *,
        proto: Protocol,
        device_transport: DeviceTransport,
        rx_chunk: int = 256,
        join_timeout_s: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._proto = proto
        self._created = device_transport
        self._transport = device_transport.transport
        self._rx_chunk = int(rx_chunk)
        self._join_timeout_s = float(join_timeout_s)
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._write_lock = threading.Lock()

        self._state = ConnectionState.DISCONNECTED
        # bumped on every connect/teardown; stale workers compare against it
        self._generation = 0
        self._parser = FrameParser(proto, logger=self._log)
        self._rx: Optional[RxWorker] = None
        self._retired_rx: Optional[RxWorker] = None
        self._connector: Optional[threading.Thread] = None

        self._callbacks: List[SessionCallback] = []

        self._last_error: Optional[BridgeError] = None
        self._frames_rx = 0
        self._frames_tx = 0
        self._bytes_rx = 0

    # ---------------- State ----------------
    @property
    def protocol(self) -> Protocol:
        return self._proto

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def status(self) -> SessionStatus:
        with self._lock:
            err = self._last_error
            return SessionStatus(
                state=self._state,
                driver=self._created.meta.driver,
                endpoint=self._transport.describe(),
                last_error=err.message if err else None,
                last_error_code=err.code if err else None,
                frames_rx=self._frames_rx,
                frames_tx=self._frames_tx,
                bytes_rx=self._bytes_rx,
            )

    # ---------------- Lifecycle ----------------
    def connect(self) -> bool:
        """
        Start a connection attempt on a worker thread.

        Returns False (and does nothing) when already connecting or connected.
        """
        with self._lock:
            if self._state is not ConnectionState.DISCONNECTED:
                self._log.debug("CONNECT_IGNORED state=%s", self._state.value)
                return False
            self._state = ConnectionState.CONNECTING
            self._generation += 1
            gen = self._generation
            # threads of the previous link that may still touch the transport
            predecessors = [t for t in (self._connector, self._retired_rx) if t is not None and t.is_alive()]
            self._connector = threading.Thread(
                target=self._connect_worker,
                args=(gen, predecessors),
                name="panelbridge-connect",
                daemon=True,
            )
            self._connector.start()

        self._log.info(
            "SESSION_CONNECT driver=%s endpoint=%s",
            self._created.meta.driver,
            self._transport.describe(),
        )
        return True

    def disconnect(self) -> None:
        """Close the link (if any), drop partial frames and report StateChanged(False)."""
        with self._lock:
            prev = self._state
            rx = self._teardown_locked()
            self._log.info("SESSION_DISCONNECT prev_state=%s", prev.value)
            self._emit_locked(StateChanged(False))
        self._join(rx)

    # ---------------- TX ----------------
    def send(self, command: bytes) -> bool:
        """
        Write one framed command. Dropped silently (returns False) unless connected.
        """
        with self._lock:
            if self._state is not ConnectionState.CONNECTED:
                self._log.debug("SEND_DROPPED state=%s len=%d", self._state.value, len(command))
                return False
            gen = self._generation

        try:
            with self._write_lock:
                self._transport.write(command)
                self._transport.flush()
        except TransportError as e:
            self._on_link_failure(gen, e, op="write")
            return False

        with self._lock:
            self._frames_tx += 1
        self._log.debug("SENT len=%d raw=%s", len(command), command.hex())
        return True

    def send_command(self, name: str) -> bool:
        """Encode a named protocol command (e.g. "power_on") and send it."""
        return self.send(self._proto.encode_command(name))

    # ---------------- Subscribers ----------------
    def subscribe(self, cb: SessionCallback, *, replay_state: bool = False) -> Callable[[], None]:
        """
        Register cb for session events. With replay_state, cb first receives
        StateChanged(is_connected) under the same lock that orders live
        transitions, so no transition is missed or delivered ahead of it.
        """
        with self._lock:
            if replay_state:
                cb(StateChanged(self._state is ConnectionState.CONNECTED))
            self._callbacks.append(cb)

        def _unsubscribe() -> None:
            with self._lock:
                if cb in self._callbacks:
                    self._callbacks.remove(cb)

        return _unsubscribe

    # ---------------- Workers ----------------
    def _connect_worker(self, gen: int, predecessors: List[threading.Thread]) -> None:
        for t in predecessors:
            t.join()
        with self._lock:
            if gen != self._generation:
                return

        try:
            self._transport.open()
        except TransportError as e:
            self._connect_failed(gen, e)
            return
        except Exception as e:
            self._log.exception("TRANSPORT_OPEN_UNEXPECTED")
            self._connect_failed(gen, e)
            return

        with self._lock:
            stale = gen != self._generation
            if not stale:
                self._state = ConnectionState.CONNECTED
                self._last_error = None
                self._parser.reset()
                self._rx = RxWorker(lambda: self._pump_rx(gen), logger=self._log)
                self._rx.start()
                self._log.info("SESSION_CONNECTED endpoint=%s", self._transport.describe())
                self._emit_locked(StateChanged(True))

        if stale:
            # disconnect() won while the socket was opening
            self._log.info("SESSION_CONNECT_SUPERSEDED endpoint=%s", self._transport.describe())
            self._close_transport()

    def _connect_failed(self, gen: int, exc: Exception) -> None:
        err = DeviceConnectError(
            "Could not open device transport.",
            hint=str(exc),
            details={"driver": self._created.meta.driver, "endpoint": self._transport.describe()},
        )
        with self._lock:
            if gen != self._generation:
                return
            self._state = ConnectionState.DISCONNECTED
            self._last_error = err
            self._log.warning("SESSION_CONNECT_FAILED code=%s msg=%s hint=%s", err.code, err.message, err.hint)
            self._emit_locked(StateChanged(False))

    def _pump_rx(self, gen: int) -> None:
        try:
            data = self._transport.read(self._rx_chunk)
        except TransportError as e:
            self._on_link_failure(gen, e, op="read")
            return

        if not data:
            return

        messages: List[str] = []
        with self._lock:
            if gen != self._generation:
                return
            self._bytes_rx += len(data)
            self._parser.feed(data)
            while True:
                try:
                    frame = self._parser.get_frame()
                except ProtocolMismatchError as e:
                    self._last_error = e
                    self._log.warning("PROTOCOL_MISMATCH msg=%s dropped=%s", e.message, e.details.get("dropped"))
                    break
                if frame is None:
                    break
                self._frames_rx += 1
                messages.append(frame.payload)

        for raw in messages:
            with self._lock:
                # a disconnect since parsing makes the rest stale
                if gen != self._generation:
                    self._log.debug("RX_DROPPED_STALE payload=%r", raw)
                    return
                self._log.debug("RX payload=%r", raw)
                self._emit_locked(DataReceived(raw))

    def _on_link_failure(self, gen: int, exc: Exception, *, op: str) -> None:
        err = DeviceDisconnectedError(
            f"Device link failed during {op}.",
            hint=str(exc),
            details={"endpoint": self._transport.describe(), "op": op},
        )
        with self._lock:
            if gen != self._generation or self._state is not ConnectionState.CONNECTED:
                return
            rx = self._teardown_locked()
            self._last_error = err
            self._log.warning("SESSION_LINK_LOST code=%s op=%s hint=%s", err.code, op, err.hint)
            self._emit_locked(StateChanged(False))
        self._join(rx)

    # ---------------- Helpers ----------------
    def _teardown_locked(self) -> Optional[RxWorker]:
        self._generation += 1
        self._state = ConnectionState.DISCONNECTED
        rx, self._rx = self._rx, None
        if rx is not None:
            rx.stop()
            self._retired_rx = rx
        self._close_transport()
        self._parser.reset()
        return rx

    def _close_transport(self) -> None:
        try:
            self._transport.close()
        except Exception:
            self._log.exception("Failed to close transport")

    def _join(self, rx: Optional[RxWorker]) -> None:
        if rx is None or rx is threading.current_thread():
            return
        rx.join(timeout=self._join_timeout_s)
        if rx.is_alive():
            self._log.warning("RX_THREAD_JOIN_TIMEOUT timeout_s=%.2f", self._join_timeout_s)

    def _emit_locked(self, event: SessionEvent) -> None:
        # caller holds self._lock
        self._emit(event)

    def _emit(self, event: SessionEvent) -> None:
        with self._lock:
            cbs = list(self._callbacks)

        for cb in cbs:
            try:
                cb(event)
            except Exception:
                self._log.exception("SESSION_CALLBACK_ERROR event=%s", type(event).__name__)

    def __enter__(self) -> "DeviceSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()
