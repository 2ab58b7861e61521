# panelbridge/protocol/loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml


class ProtocolLoader:
    """Load the projector protocol YAML files into plain dicts."""

    REQUIRED_FILES = (
        "constants.yml",
        "commands.yml",
        "replies.yml",
    )

    def __init__(self, config_dir: str | Path):
        self.config_dir = Path(config_dir)

        self.constants: Dict[str, Any] = {}
        self.commands: Dict[str, Dict[str, Any]] = {}
        self.replies: Dict[str, str] = {}

    def load_all(self) -> None:
        for fn in self.REQUIRED_FILES:
            path = self.config_dir / fn
            if not path.exists():
                raise FileNotFoundError(f"Protocol file not found: {path}")

        self.constants = self._load_yaml("constants.yml")
        self.commands = self._load_yaml("commands.yml").get("commands", None)
        self.replies = self._load_yaml("replies.yml").get("replies", None)

        if not isinstance(self.commands, dict):
            raise ValueError("commands.yml must contain 'commands' mapping")
        if not isinstance(self.replies, dict):
            raise ValueError("replies.yml must contain 'replies' mapping")

        for name, cmd in self.commands.items():
            if not isinstance(cmd, dict):
                raise ValueError(f"Command '{name}' must be a mapping with a non-empty 'token'")
            # unquoted ON / OFF / YES load as bools
            for field in ("token", "description"):
                if field in cmd and not isinstance(cmd[field], str):
                    raise ValueError(
                        f"Command '{name}' {field} must be a string, got {cmd[field]!r} (quote it in commands.yml)"
                    )
            if not cmd.get("token"):
                raise ValueError(f"Command '{name}' must be a mapping with a non-empty 'token'")

        for key, value in self.replies.items():
            if not isinstance(value, str):
                raise ValueError(f"Reply '{key}' must be a string, got {value!r} (quote it in replies.yml)")

        for key in ("stx", "etx"):
            if not isinstance(self.constants.get(key), int):
                raise ValueError(f"constants.yml must define integer '{key}'")

    def protocol_version(self) -> int:
        """
        Wire protocol version. Defaults to 0 if not specified.
        """
        v = self.constants.get("protocol_version", 0)
        try:
            return int(v)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid protocol version in constants.yml: {v!r}") from None

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        path = self.config_dir / filename
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{filename} must be a mapping")
        return data
