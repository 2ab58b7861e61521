from __future__ import annotations

import pytest

from panelbridge.core.errors import ConfigError
from panelbridge.model.transport import TransportType
from panelbridge.transport.base import Transport
from panelbridge.transport.factory import DRIVERS, TransportFactory
from panelbridge.transport.tcp import TCPTransport


class DummyTransport(Transport):
    def __init__(self, *, host: str = "", lamp: str = ""):
        self.host = host
        self.lamp = lamp
        self.calls = []

    def open(self) -> None:
        self.calls.append("open")

    def close(self) -> None:
        self.calls.append("close")

    def is_open(self) -> bool: return False
    def read(self, n: int) -> bytes: return b""
    def write(self, data: bytes) -> int: return len(data)


def _tcp_meta(**params) -> TransportType:
    schema = {
        "host": {"type": "str", "default": "127.0.0.1"},
        "port": {"type": "int", "default": 55555},
        "timeout": {"type": "float", "default": 0.05},
    }
    schema.update(params)
    return TransportType(name="tcp", label="Projector (TCP)", driver="tcp", params=schema, key_param="host")


def test_builtin_driver_table_is_tcp_only():
    assert DRIVERS == {"tcp": TCPTransport}


def test_create_builds_unopened_tcp_link():
    f = TransportFactory({"tcp": _tcp_meta()})

    created = f.create("tcp", overrides={"host": "192.168.1.50", "port": 4352})

    assert isinstance(created.transport, TCPTransport)
    assert created.transport.is_open() is False
    assert created.transport.describe() == "192.168.1.50:4352"
    assert created.params == {"host": "192.168.1.50", "port": 4352, "timeout": 0.05}
    assert created.key_param_value == "192.168.1.50"
    assert set(f.transports()) == {"tcp"}


def test_resolve_params_widens_int_to_float():
    params = TransportFactory.resolve_params(_tcp_meta(), {"timeout": 1})
    assert params["timeout"] == 1.0
    assert isinstance(params["timeout"], float)


def test_optional_param_without_default_is_left_out():
    meta = _tcp_meta(source_port={"type": "int"})
    assert "source_port" not in TransportFactory.resolve_params(meta, {})


@pytest.mark.parametrize(
    "overrides",
    [
        {"baud": 9600},
        {"port": "55555"},
        {"port": True},
        {"timeout": "fast"},
    ],
)
def test_bad_overrides_are_config_errors(overrides):
    with pytest.raises(ConfigError):
        TransportFactory({"tcp": _tcp_meta()}).create("tcp", overrides=overrides)


def test_required_param_without_value_is_config_error():
    meta = _tcp_meta(host={"type": "str", "required": True})
    with pytest.raises(ConfigError) as ei:
        TransportFactory.resolve_params(meta, {})
    assert "--host" in ei.value.hint


def test_unknown_schema_type_is_config_error():
    meta = _tcp_meta(keepalive={"type": "bool", "default": True})
    with pytest.raises(ConfigError):
        TransportFactory.resolve_params(meta, {})


def test_unknown_link_and_unsupported_driver():
    serial_meta = TransportType(name="rs232", label="RS-232", driver="serial", params={"port": {"type": "str", "default": "COM1"}}, key_param="port")
    f = TransportFactory({"tcp": _tcp_meta(), "rs232": serial_meta})

    with pytest.raises(ConfigError):
        f.create("usb")
    with pytest.raises(ConfigError) as ei:
        f.create("rs232")
    assert ei.value.details["driver"] == "serial"


def test_injected_driver_table():
    meta = TransportType(name="bench", label="Bench", driver="dummy", params={"host": {"type": "str", "default": "x"}})
    created = TransportFactory({"bench": meta}, drivers={"dummy": DummyTransport}).create("bench")

    assert isinstance(created.transport, DummyTransport)
    assert created.transport.host == "x"


def test_constructor_mismatch_is_config_error():
    f = TransportFactory({"tcp": _tcp_meta(colour={"type": "str", "default": "red"})})
    with pytest.raises(ConfigError):
        f.create("tcp")


def test_base_transport_context_manager_opens_and_closes():
    with DummyTransport() as t:
        assert t.describe() == "DummyTransport"
        t.flush()
    assert t.calls == ["open", "close"]
