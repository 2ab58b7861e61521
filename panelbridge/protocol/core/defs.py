# panelbridge/protocol/core/defs.py
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict

from ..loader import ProtocolLoader


@dataclass(frozen=True)
class ReplyTokens:
    power_on: str = "PON"
    power_off: str = "POF"
    lamp_hours: str = "LH?"
    value_separator: str = "?"


class Protocol:
    """Runtime access to projector protocol metadata."""

    def __init__(self, loader: ProtocolLoader):
        c = loader.constants
        self.version: int = loader.protocol_version()

        self.stx: bytes = self._byte(c["stx"], "stx")
        self.etx: bytes = self._byte(c["etx"], "etx")
        self.header: bytes = self._byte_list(c.get("header", []), "header")
        self.trailer: bytes = self._byte_list(c.get("trailer", []), "trailer")
        self.max_buffer: int = int(c.get("max_buffer", 4096))
        if self.stx == self.etx:
            raise ValueError("stx and etx must differ")
        if self.max_buffer <= 0:
            raise ValueError(f"max_buffer must be > 0, got {self.max_buffer}")

        self.commands: Dict[str, str] = {name: str(cmd["token"]) for name, cmd in loader.commands.items()}
        self.command_help: Dict[str, str] = {
            name: str(cmd.get("description", "")) for name, cmd in loader.commands.items()
        }

        known = {f.name for f in fields(ReplyTokens)}
        unknown = set(loader.replies) - known
        if unknown:
            raise ValueError(f"Unknown reply keys in replies.yml: {sorted(unknown)}")
        self.replies = ReplyTokens(**{k: str(v) for k, v in loader.replies.items()})

    # ---------------- Encoding ----------------
    def encode_payload(self, payload: str | bytes) -> bytes:
        """Wrap an ASCII token into a full outbound frame."""
        body = payload.encode("ascii") if isinstance(payload, str) else bytes(payload)
        if self.stx in body or self.etx in body:
            raise ValueError(f"Payload {body!r} contains a frame delimiter")
        return self.stx + self.header + body + self.trailer + self.etx

    def encode_command(self, name: str) -> bytes:
        return self.encode_payload(self.get_command_token(name))

    def get_command_token(self, name: str) -> str:
        if name not in self.commands:
            raise ValueError(f"Unknown command: {name}")
        return self.commands[name]

    # ---------------- Helpers ----------------
    @staticmethod
    def _byte(v: Any, what: str) -> bytes:
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= 0xFF:
            raise ValueError(f"'{what}' must be a byte value, got {v!r}")
        return bytes([v])

    @classmethod
    def _byte_list(cls, values: Any, what: str) -> bytes:
        if not isinstance(values, list):
            raise ValueError(f"'{what}' must be a list of byte values")
        return b"".join(cls._byte(v, what) for v in values)
