# panelbridge/core/context.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Type

import yaml

from panelbridge.model.joins import JoinTable
from panelbridge.model.loader import MetadataLoader
from panelbridge.model.transport import TransportType

from panelbridge.protocol.loader import ProtocolLoader
from panelbridge.protocol.core.defs import Protocol

from panelbridge.transport.base import Transport
from panelbridge.transport.factory import TransportFactory

from panelbridge.core.errors import ConfigError


def default_metadata_dir() -> Path:
    # <package>/metadata, based on this file's location
    return Path(__file__).resolve().parents[1] / "metadata"


@dataclass(frozen=True)
class Context:
    transports: Dict[str, TransportType]
    joins: JoinTable
    protocol: Protocol
    protocol_version: int
    transport_factory: TransportFactory

    @classmethod
    def load(
        cls,
        metadata_dir: str | Path | None = None,
        protocol_dir: str | Path | None = None,
        *,
        drivers: Optional[Mapping[str, Type[Transport]]] = None,
    ) -> "Context":
        """
        Load transport catalog, join table and protocol definition.

        `drivers` maps driver keys to transport classes; tests inject fakes here.
        Defaults to the built-in TCP driver.
        """
        metadata_dir = Path(metadata_dir) if metadata_dir is not None else default_metadata_dir()
        protocol_dir = Path(protocol_dir) if protocol_dir is not None else metadata_dir / "protocol"

        ml = MetadataLoader(metadata_dir)
        try:
            ml.load_all()
        except (FileNotFoundError, ValueError, TypeError, yaml.YAMLError) as e:
            raise ConfigError(
                "Failed to load metadata.",
                hint=str(e),
                details={"metadata_dir": str(metadata_dir)},
            ) from None

        pl = ProtocolLoader(protocol_dir)
        try:
            pl.load_all()
            proto = Protocol(pl)
        except (FileNotFoundError, ValueError, TypeError, yaml.YAMLError) as e:
            raise ConfigError(
                "Failed to load protocol definition.",
                hint=str(e),
                details={"protocol_dir": str(protocol_dir)},
            ) from None

        missing = sorted(set(ml.joins.commands()) - set(proto.commands))
        if missing:
            raise ConfigError(
                f"Join table references unknown commands: {missing}.",
                hint=f"Known commands: {sorted(proto.commands)}",
                details={"metadata_dir": str(metadata_dir)},
            )

        factory = TransportFactory(ml.transports, drivers)

        return cls(
            transports=dict(ml.transports),
            joins=ml.joins,
            protocol=proto,
            protocol_version=pl.protocol_version(),
            transport_factory=factory,
        )
