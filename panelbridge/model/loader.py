# panelbridge/model/loader.py
from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .joins import ActionKind, DEVICE_ACTIONS, FeedbackJoins, JoinAction, JoinTable, PANEL_ACTIONS
from .transport import TransportType


class MetadataLoader:
    """
    Loads static metadata from YAML into model classes.

    Loads:
        - transports.yml
        - joins.yml

    After calling load_all(), exposes:
        self.transports : dict[str, TransportType]
        self.joins      : JoinTable
    """

    def __init__(self, config_dir: str | Path):
        self.config_dir = Path(config_dir)
        self.transports: Dict[str, TransportType] = {}
        self.joins: JoinTable = JoinTable()

    # ---------------------------------------------------------------------
    # YAML utility
    # ---------------------------------------------------------------------
    def _load_yaml(self, filename: str) -> dict:
        full_path = self.config_dir / filename
        if not full_path.exists():
            raise FileNotFoundError(f"Missing metadata file: {full_path}")

        with open(full_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{filename} must be a mapping")
        return data

    # ---------------------------------------------------------------------
    # Public entry point
    # ---------------------------------------------------------------------
    def load_all(self) -> None:
        self.transports.clear()
        self._load_transports()
        self._load_joins()

    # ---------------------------------------------------------------------
    # Transports
    # ---------------------------------------------------------------------
    def _load_transports(self) -> None:
        data = self._load_yaml("transports.yml")

        transports = data.get("transports")
        if not isinstance(transports, dict):
            raise ValueError("transports.yml is missing 'transports' root node")

        for name_raw, tinfo in transports.items():
            name = str(name_raw)
            if not isinstance(tinfo, dict):
                raise ValueError(f"Transport {name} entry must be a mapping")

            driver = tinfo.get("driver")
            if not driver:
                raise ValueError(f"Transport {name} is missing 'driver'")

            key_param = tinfo.get("key_param")
            if not key_param:
                raise ValueError(f"Transport {name} is missing 'key_param'")

            params = tinfo.get("params") or {}
            if not isinstance(params, dict):
                raise ValueError(f"Transport {name} 'params' must be a mapping")

            if key_param not in params:
                raise ValueError(f"Transport {name} key_param '{key_param}' not defined in params")

            self.transports[name] = TransportType(
                name=name,
                label=str(tinfo.get("label") or name),
                driver=str(driver),
                params=params,  # types are checked by TransportFactory.resolve_params
                key_param=str(key_param),
            )

    # ---------------------------------------------------------------------
    # Joins
    # ---------------------------------------------------------------------
    def _load_joins(self) -> None:
        data = self._load_yaml("joins.yml")

        panel = self._load_join_section(data, "panel", PANEL_ACTIONS)
        device = self._load_join_section(data, "device", DEVICE_ACTIONS)
        feedback = self._load_feedback(data.get("feedback") or {})

        self.joins = JoinTable(panel=panel, device=device, feedback=feedback)

    def _load_join_section(self, data: dict, section: str, allowed: frozenset) -> Dict[int, JoinAction]:
        entries = data.get(section) or {}
        if not isinstance(entries, dict):
            raise ValueError(f"joins.yml '{section}' must be a mapping")

        out: Dict[int, JoinAction] = {}
        for join_raw, info in entries.items():
            join = int(join_raw)
            if not isinstance(info, dict):
                raise ValueError(f"Join {join} entry must be a mapping")

            try:
                kind = ActionKind(str(info.get("action")))
            except ValueError:
                raise ValueError(f"Join {join} has unknown action {info.get('action')!r}") from None
            if kind not in allowed:
                raise ValueError(f"Join {join}: action '{kind.value}' not allowed in '{section}'")

            out[join] = self._build_action(join, kind, info)

        return out

    @staticmethod
    def _build_action(join: int, kind: ActionKind, info: Dict[str, Any]) -> JoinAction:
        label: Optional[str] = None
        group: tuple = ()
        command: Optional[str] = None

        if kind is ActionKind.NAVIGATE:
            label = info.get("label")
            if not label:
                raise ValueError(f"Navigate join {join} is missing 'label'")
            label = str(label)

        elif kind is ActionKind.INTERLOCK:
            raw_group = info.get("group")
            if not isinstance(raw_group, list):
                raise ValueError(f"Interlock join {join} needs a 'group' list")
            group = tuple(int(j) for j in raw_group)
            if join not in group or len(set(group)) < 2:
                raise ValueError(f"Interlock join {join}: group {list(group)} must contain it and one other join")

        elif kind is ActionKind.COMMAND:
            command = info.get("command")
            if not command:
                raise ValueError(f"Command join {join} is missing 'command'")
            command = str(command)

        return JoinAction(join=join, kind=kind, label=label, group=group, command=command)

    @staticmethod
    def _load_feedback(data: dict) -> FeedbackJoins:
        if not isinstance(data, dict):
            raise ValueError("joins.yml 'feedback' must be a mapping")

        values: Dict[str, int] = {}
        for section in ("bool", "string"):
            entries = data.get(section) or {}
            if not isinstance(entries, dict):
                raise ValueError(f"joins.yml feedback '{section}' must be a mapping")
            for name, join in entries.items():
                values[str(name)] = int(join)

        known = {f.name for f in fields(FeedbackJoins)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown feedback joins: {sorted(unknown)}")

        fb = FeedbackJoins(**values)
        if fb.connected == fb.disconnected:
            raise ValueError("connected and disconnected feedback must use different joins")
        return fb
