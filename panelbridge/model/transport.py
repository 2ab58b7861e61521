# panelbridge/model/transport.py
from __future__ import annotations

from typing import Any, Dict, Optional


class TransportType:
    """
    Static model of a transport catalog entry (transports.yml).

    Contains only metadata, no runtime state.

    Attributes:
        name: Catalog key used on the command line and in bridge.yml (e.g. "tcp").
        label: Human-readable label for display/logging.
        driver: Driver key looked up in transport.factory.DRIVERS ("tcp").
        params: Parameter schema: param_name -> {type, default, required, help}
        key_param: Param that identifies the concrete endpoint (e.g. "host").
    """

    def __init__(
        self,
        name: str,
        label: str,
        driver: str,
        params: Optional[Dict[str, Dict[str, Any]]] = None,
        *,
        key_param: str = "host",
    ):
        self.name: str = str(name)
        self.label: str = str(label)
        self.driver: str = str(driver)
        self.params: Dict[str, Dict[str, Any]] = params or {}
        self.key_param: str = str(key_param)

    def __repr__(self) -> str:
        return f"TransportType(name='{self.name}', label='{self.label}', driver='{self.driver}')"
