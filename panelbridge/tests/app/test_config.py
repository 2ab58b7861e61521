from __future__ import annotations

from pathlib import Path

import pytest

from panelbridge.app.config import load_bridge_config
from panelbridge.core.context import Context, default_metadata_dir
from panelbridge.core.errors import ConfigError


def test_default_bridge_config():
    cfg = load_bridge_config()

    assert cfg.transport == "tcp"
    assert cfg.transport_overrides == {}
    assert cfg.rx_chunk == 256
    assert cfg.log_level == "INFO"
    assert cfg.log_file is None
    assert Path(cfg.metadata_dir) == default_metadata_dir()


def test_custom_bridge_config(tmp_path: Path):
    p = tmp_path / "bridge.yml"
    p.write_text(
        "transport: lab\n"
        "transport_overrides: {host: 10.20.0.4, port: 4352}\n"
        "session: {rx_chunk: 64}\n"
        "logging: {level: debug, file: bridge.log}\n",
        encoding="utf-8",
    )

    cfg = load_bridge_config(p)

    assert cfg.transport == "lab"
    assert cfg.transport_overrides == {"host": "10.20.0.4", "port": 4352}
    assert cfg.rx_chunk == 64
    assert cfg.log_level == "DEBUG"
    assert cfg.log_file == "bridge.log"


@pytest.mark.parametrize(
    "text",
    [
        "- a\n- b\n",
        "session: {rx_chunk: zero}\n",
        "session: {rx_chunk: 0}\n",
        "logging: [1]\n",
        "transport: [tcp\n",
    ],
)
def test_invalid_bridge_config(tmp_path: Path, text: str):
    p = tmp_path / "bridge.yml"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_bridge_config(p)


def test_missing_bridge_config(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_bridge_config(tmp_path / "nope.yml")


def test_context_load_defaults():
    ctx = Context.load()

    assert ctx.protocol_version == 1
    assert set(ctx.transports) == {"tcp"}
    assert ctx.protocol.commands == {"power_on": "PON", "power_off": "POFF", "lamp_hours": "LH?"}
    assert set(ctx.transport_factory.transports()) == {"tcp"}


def test_context_rejects_join_with_unknown_command(tmp_path: Path):
    src = default_metadata_dir()
    (tmp_path / "transports.yml").write_text((src / "transports.yml").read_text(encoding="utf-8"), encoding="utf-8")
    (tmp_path / "joins.yml").write_text("device:\n  30: {action: command, command: reboot}\n", encoding="utf-8")

    with pytest.raises(ConfigError) as ei:
        Context.load(tmp_path, src / "protocol")
    assert "reboot" in ei.value.message


def test_context_wraps_loader_errors(tmp_path: Path):
    with pytest.raises(ConfigError) as ei:
        Context.load(tmp_path)
    assert ei.value.code == "config_error"


def test_context_rejects_unquoted_yaml_bool_token(tmp_path: Path):
    src = default_metadata_dir() / "protocol"
    for name in ("constants.yml", "replies.yml"):
        (tmp_path / name).write_text((src / name).read_text(encoding="utf-8"), encoding="utf-8")
    (tmp_path / "commands.yml").write_text(
        "commands:\n  power_on: {token: ON}\n  power_off: {token: 'OFF'}\n  lamp_hours: {token: 'LH?'}\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError) as ei:
        Context.load(protocol_dir=tmp_path)
    assert "quote it" in ei.value.hint
