# panelbridge/transport/factory.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Type

from panelbridge.core.errors import ConfigError
from panelbridge.model.transport import TransportType
from panelbridge.transport.base import Transport
from panelbridge.transport.tcp import TCPTransport

# driver key in transports.yml -> transport class
DRIVERS: Dict[str, Type[Transport]] = {"tcp": TCPTransport}

# schema type -> accepted python types (bool is excluded explicitly below)
_PARAM_TYPES: Dict[str, tuple] = {
    "str": (str,),
    "int": (int,),
    "float": (int, float),
}


@dataclass(frozen=True)
class DeviceTransport:
    """An unopened projector link plus the catalog entry and params it was built from."""
    transport: Transport
    params: Dict[str, Any]
    meta: TransportType

    @property
    def key_param_value(self) -> str:
        return str(self.params.get(self.meta.key_param, ""))


class TransportFactory:
    """
    Builds the projector link for one transports.yml entry.

    Params come from the entry's schema defaults, replaced by overrides from
    bridge.yml or the command line. Nothing is opened here.
    """

    def __init__(self, transports: Mapping[str, TransportType], drivers: Optional[Mapping[str, Type[Transport]]] = None):
        self._transports = dict(transports)
        self._drivers = dict(DRIVERS if drivers is None else drivers)

    def transports(self) -> Mapping[str, TransportType]:
        return dict(self._transports)

    def create(self, name: str, overrides: Optional[Mapping[str, Any]] = None) -> DeviceTransport:
        meta = self._transports.get(name)
        if meta is None:
            raise ConfigError(
                f"No projector link named '{name}' in transports.yml.",
                hint="Run: panelbridge transports",
                details={"name": name, "known": sorted(self._transports)},
            )

        cls = self._drivers.get(meta.driver)
        if cls is None:
            raise ConfigError(
                f"Link '{name}' uses unsupported driver '{meta.driver}'.",
                hint=f"Supported drivers: {sorted(self._drivers)}",
                details={"name": name, "driver": meta.driver},
            )

        params = self.resolve_params(meta, overrides or {})
        try:
            transport = cls(**params)
        except TypeError as e:
            raise ConfigError(
                f"Link '{name}' has params the {meta.driver} driver does not accept.",
                hint=str(e),
                details={"name": name, "params": sorted(params)},
            ) from None
        return DeviceTransport(transport=transport, params=params, meta=meta)

    @staticmethod
    def resolve_params(meta: TransportType, overrides: Mapping[str, Any]) -> Dict[str, Any]:
        """Schema defaults merged with overrides, type-checked; required params must end up set."""
        unknown = sorted(set(overrides) - set(meta.params))
        if unknown:
            raise ConfigError(
                f"Unknown param(s) {unknown} for link '{meta.name}'.",
                hint=f"Valid params: {sorted(meta.params)}",
                details={"name": meta.name},
            )

        params: Dict[str, Any] = {}
        for pname, schema in meta.params.items():
            if pname in overrides:
                value = overrides[pname]
            elif "default" in schema:
                value = schema["default"]
            elif schema.get("required"):
                raise ConfigError(
                    f"Link '{meta.name}' needs a value for '{pname}'.",
                    hint=f"Pass --{pname} or set it under transport_overrides in bridge.yml.",
                    details={"name": meta.name, "param": pname},
                )
            else:
                continue
            params[pname] = _check_type(meta.name, pname, value, schema.get("type", "str"))
        return params


def _check_type(link: str, pname: str, value: Any, type_name: str) -> Any:
    accepted = _PARAM_TYPES.get(type_name)
    if accepted is None:
        raise ConfigError(
            f"Link '{link}' param '{pname}' has unknown schema type '{type_name}'.",
            hint=f"Use one of {sorted(_PARAM_TYPES)}.",
            details={"name": link, "param": pname},
        )
    if isinstance(value, bool) or not isinstance(value, accepted):
        raise ConfigError(
            f"Link '{link}' param '{pname}' must be {type_name}, got {value!r}.",
            details={"name": link, "param": pname, "value": value},
        )
    return float(value) if type_name == "float" else value
