# panelbridge/cli/args.py
from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, Tuple

from panelbridge.app.config import BridgeConfig, load_bridge_config
from panelbridge.core.context import Context
from panelbridge.core.errors import ConfigError
from panelbridge.model.transport import TransportType


# ---------------- link param flags ----------------

# argparse converters for transports.yml schema types; TransportFactory re-checks the result
_FLAG_TYPES = {"str": str, "int": int, "float": float}


def flag_type(type_name: Any):
    return _FLAG_TYPES.get(type_name, str)


def flag_required(schema: Mapping[str, Any], configured: Mapping[str, Any], pname: str) -> bool:
    """A param needs its flag only when neither the schema nor bridge.yml supplies a value."""
    return bool(schema.get("required")) and "default" not in schema and pname not in configured


# ---------------- argparse (two-stage) ----------------

def _add_global_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--metadata-dir", default=None, help="Directory with transports.yml / joins.yml / protocol/.")
    parser.add_argument("--config", default=None, help="Bridge config file (default: <metadata-dir>/bridge.yml).")
    parser.add_argument("--log-level", default=None, help="Override logging level (DEBUG, INFO, ...).")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file.")


def build_base_parser() -> argparse.ArgumentParser:
    """
    Stage 1 parser: command + --transport + app-level args.
    Transport params are NOT declared here.
    """
    parser = argparse.ArgumentParser(prog="panelbridge")
    _add_global_args(parser)
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("transports")
    sub.add_parser("joins")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--transport", default=None, help="Transport name (see: panelbridge transports).")

    p_send = sub.add_parser("send", parents=[common])
    p_send.add_argument("command")
    p_send.add_argument("--wait", type=float, default=2.0)

    sub.add_parser("shell", parents=[common])

    return parser


def build_full_parser_for(
    *,
    meta: TransportType,
    commands: Mapping[str, str],
    configured: Mapping[str, Any],
) -> argparse.ArgumentParser:
    """
    Stage 2 parser: includes transport param flags from the transport schema.

    Flags default to None so that bridge.yml overrides and schema defaults
    apply unless the flag is given.
    """
    params: Mapping[str, Mapping[str, Any]] = meta.params or {}
    key_param = meta.key_param

    parser = argparse.ArgumentParser(prog="panelbridge")
    _add_global_args(parser)
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("transports")
    sub.add_parser("joins")

    def add_transport_flags(p: argparse.ArgumentParser) -> None:
        p.add_argument("--transport", default=None)

        # key param first
        ordered = list(params)
        if key_param in params:
            ordered = [key_param] + [n for n in params if n != key_param]
        for name in ordered:
            spec = params[name]
            p.add_argument(
                f"--{name}",
                required=flag_required(spec, configured, name),
                default=None,
                type=flag_type(spec.get("type")),
                help=f"Transport param for '{meta.label}' (default: {spec.get('default', '-')}).",
            )

    p_send = sub.add_parser("send")
    add_transport_flags(p_send)
    p_send.add_argument("command", choices=sorted(commands))
    p_send.add_argument("--wait", type=float, default=2.0, help="Seconds to print replies after sending.")

    p_shell = sub.add_parser("shell")
    add_transport_flags(p_shell)

    return parser


def parse_args(
    argv: Optional[list[str]] = None,
) -> Tuple[argparse.Namespace, BridgeConfig, Context]:
    """
    Returns: (args, config, context)

    For 'send' / 'shell' the returned config carries the chosen transport and
    the merged overrides (bridge.yml first, then CLI flags).
    """
    base_parser = build_base_parser()
    base, _unknown = base_parser.parse_known_args(argv)

    cfg = load_bridge_config(base.config, metadata_dir=base.metadata_dir)
    if base.log_level:
        cfg = replace(cfg, log_level=str(base.log_level).upper())
    if base.log_file:
        cfg = replace(cfg, log_file=base.log_file)

    context = Context.load(cfg.metadata_dir)

    if base.cmd in ("transports", "joins"):
        return base, cfg, context

    name = base.transport or cfg.transport
    meta = context.transports.get(name)
    if meta is None:
        raise ConfigError(
            f"Unknown transport '{name}'.",
            hint="Run: panelbridge transports",
            details={"known": sorted(context.transports)},
        )

    full_parser = build_full_parser_for(
        meta=meta,
        commands=context.protocol.commands,
        configured=cfg.transport_overrides if name == cfg.transport else {},
    )
    args = full_parser.parse_args(argv)

    overrides: Dict[str, Any] = dict(cfg.transport_overrides) if name == cfg.transport else {}
    overrides.update({
        pname: getattr(args, pname)
        for pname in meta.params.keys()
        if getattr(args, pname, None) is not None
    })

    return args, replace(cfg, transport=name, transport_overrides=overrides), context

