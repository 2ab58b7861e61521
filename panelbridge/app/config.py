# panelbridge/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from panelbridge.core.context import default_metadata_dir
from panelbridge.core.errors import ConfigError


@dataclass(frozen=True)
class BridgeConfig:
    metadata_dir: str
    transport: str = "tcp"
    transport_overrides: Dict[str, Any] = field(default_factory=dict)
    rx_chunk: int = 256
    log_level: str = "INFO"
    log_file: Optional[str] = None


def load_bridge_config(path: str | Path | None = None, *, metadata_dir: str | Path | None = None) -> BridgeConfig:
    """
    Read bridge.yml (defaults to the one next to the metadata).

    Missing keys fall back to BridgeConfig defaults.
    """
    metadata_dir = Path(metadata_dir) if metadata_dir is not None else default_metadata_dir()
    path = Path(path) if path is not None else metadata_dir / "bridge.yml"

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            "Failed to read bridge config.",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    if not isinstance(data, dict):
        raise ConfigError("Bridge config must be a mapping.", details={"path": str(path)})

    session = data.get("session") or {}
    logging_cfg = data.get("logging") or {}
    overrides = data.get("transport_overrides") or {}
    if not isinstance(session, dict) or not isinstance(logging_cfg, dict) or not isinstance(overrides, dict):
        raise ConfigError(
            "Bridge config sections 'session', 'logging' and 'transport_overrides' must be mappings.",
            details={"path": str(path)},
        )

    try:
        rx_chunk = int(session.get("rx_chunk", 256))
    except (TypeError, ValueError):
        raise ConfigError(
            f"Invalid session.rx_chunk {session.get('rx_chunk')!r}.",
            details={"path": str(path)},
        ) from None
    if rx_chunk <= 0:
        raise ConfigError(f"session.rx_chunk must be > 0, got {rx_chunk}.", details={"path": str(path)})

    log_file = logging_cfg.get("file")
    return BridgeConfig(
        metadata_dir=str(metadata_dir),
        transport=str(data.get("transport", "tcp")),
        transport_overrides=dict(overrides),
        rx_chunk=rx_chunk,
        log_level=str(logging_cfg.get("level", "INFO")).upper(),
        log_file=str(log_file) if log_file else None,
    )
