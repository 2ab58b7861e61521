from __future__ import annotations

import socket
import time

import pytest

from panelbridge.app.config import BridgeConfig
from panelbridge.app.runner import start_run
from panelbridge.core.context import Context, default_metadata_dir
from panelbridge.core.errors import ConfigError
from panelbridge.runtime.state import ConnectionState
from panelbridge.transport.tcp import TCPTransport


class ListSink:
    def __init__(self):
        self.changes = []
        self.closed = 0

    def on_feedback(self, change) -> None:
        self.changes.append(change)

    def close(self) -> None:
        self.closed += 1


def _wait_for(pred, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.005)
    return pred()


@pytest.fixture
def server():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    srv.settimeout(2.0)
    yield srv
    srv.close()


def _cfg(**overrides) -> BridgeConfig:
    return BridgeConfig(metadata_dir=str(default_metadata_dir()), transport_overrides=overrides)


def test_start_run_builds_unopened_tcp_controller():
    run = start_run(_cfg(host="10.1.2.3", port=4352))

    assert isinstance(run.device_transport.transport, TCPTransport)
    assert run.device_transport.key_param_value == "10.1.2.3"
    assert run.controller.status().state is ConnectionState.DISCONNECTED
    assert run.controller.status().endpoint == "10.1.2.3:4352"
    assert run.context is run.controller.context


def test_start_run_rejects_unknown_param():
    with pytest.raises(ConfigError):
        start_run(_cfg(baud=9600), context=Context.load())


def test_panel_only_flow_without_device():
    run = start_run(_cfg())
    ctl = run.controller
    sink = ListSink()
    ctl.add_sink(sink)
    ctl.add_sink(sink)

    with ctl:
        ctl.tap(3)
        ctl.tap(10)
        ctl.press(11)
        ctl.tap(14)
        ctl.tap(22)
        ctl.wait_idle()

        snap = ctl.feedback()
        assert snap.get_string(1) == "Phonebook"
        assert snap.get_bool(10) is True
        assert snap.get_bool(11) is True
        assert [snap.get_bool(j) for j in (12, 13, 14)] == [False, False, True]
        assert snap.get_bool(21) is True
        assert snap.get_bool(20) is False

    assert sink.closed == 1
    assert any(c.join == 1 and c.value == "Phonebook" for c in sink.changes)


def test_remove_sink_stops_delivery():
    ctl = start_run(_cfg()).controller
    sink = ListSink()
    ctl.add_sink(sink)
    ctl.remove_sink(sink)

    with ctl:
        ctl.tap(10)
        ctl.wait_idle()

    assert sink.changes == []
    assert sink.closed == 0


def test_connect_power_on_and_lamp_hours_over_tcp(server):
    host, port = server.getsockname()
    ctl = start_run(_cfg(host=host, port=port)).controller

    with ctl:
        ctl.tap(20)
        peer, _ = server.accept()
        peer.settimeout(2.0)
        try:
            assert _wait_for(lambda: ctl.feedback().get_bool(20))
            assert ctl.feedback().get_bool(21) is False

            ctl.tap(22)
            assert peer.recv(64) == b"\x02\x01\x00\x00PON\x00\x00\x00\x03"

            peer.sendall(b"\x02PON\x03")
            assert _wait_for(lambda: ctl.feedback().get_bool(22))
            assert ctl.feedback().get_bool(23) is False

            peer.sendall(b"\x02LH?4821\x03")
            assert _wait_for(lambda: ctl.feedback().get_string(3) == "4821")
            assert ctl.feedback().get_string(2) == "LH?4821"

            ctl.tap(21)
            assert _wait_for(lambda: ctl.feedback().get_bool(21))
            assert ctl.status().state is ConnectionState.DISCONNECTED
        finally:
            peer.close()


def test_connect_refused_keeps_disconnected_feedback():
    spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    spare.bind(("127.0.0.1", 0))
    port = spare.getsockname()[1]
    spare.close()

    ctl = start_run(_cfg(port=port, connect_timeout_s=0.5)).controller
    with ctl:
        ctl.tap(20)
        assert _wait_for(lambda: ctl.status().last_error_code == "device_connect_error")
        ctl.wait_idle()
        assert ctl.feedback().get_bool(21) is True
        assert ctl.feedback().get_bool(20) is False
