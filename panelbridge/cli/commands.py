# panelbridge/cli/commands.py
from __future__ import annotations

import logging
import sys
import threading
import time
from pathlib import Path
from typing import Optional, TextIO

from panelbridge.app.config import BridgeConfig
from panelbridge.app.runner import start_run
from panelbridge.core.context import Context
from panelbridge.model.signal import SignalKind
from panelbridge.runtime.events import DataReceived, SessionEvent, StateChanged
from panelbridge.runtime.feedback import FeedbackChange


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ---------------- Feedback sink ----------------

class PrintFeedbackSink:
    """Print every feedback change, one line each."""
    def __init__(self, out: Optional[TextIO] = None):
        self._out = out

    def on_feedback(self, change: FeedbackChange) -> None:
        tag = "D" if change.kind is SignalKind.BOOL else "S"
        print(f"FB {tag}{change.join:<3d} = {change.value!r}", file=self._out, flush=True)

    def close(self) -> None:
        return None


# ---------------- Logging ----------------

def configure_logging(level: str, log_file: Optional[str] = None) -> None:
    """
    Console handler on stderr plus an optional file handler (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if not any(getattr(h, "_panelbridge_console", False) for h in root.handlers):
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(logging.Formatter(LOG_FORMAT))
        sh._panelbridge_console = True  # type: ignore[attr-defined]
        root.addHandler(sh)

    if not log_file:
        return

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    target = str(path.resolve())
    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(path, encoding="utf-8", delay=True)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(fh)


# ---------------- Commands ----------------

def cmd_transports(*, context: Context) -> int:
    for name in sorted(context.transports):
        meta = context.transports[name]
        params = ", ".join(
            f"{p}={spec.get('default', '<required>')}" for p, spec in meta.params.items()
        )
        print(f"{name:<6} {meta.label} (driver={meta.driver}, key={meta.key_param}) {params}")
    return 0


def cmd_joins(*, context: Context) -> int:
    joins = context.joins
    for title, table in (("panel", joins.panel), ("device", joins.device)):
        print(f"{title}:")
        for number in sorted(table):
            action = table[number]
            extra = action.label or action.command or (list(action.group) if action.group else "")
            print(f"  {number:>3d}  {action.kind.value:<10} {extra}")

    fb = joins.feedback
    print("feedback:")
    print(f"  connected=D{fb.connected} disconnected=D{fb.disconnected} "
          f"power_on=D{fb.power_on} power_off=D{fb.power_off}")
    print(f"  page_title=S{fb.page_title} rx_text=S{fb.rx_text} lamp_hours=S{fb.lamp_hours}")

    proto = context.protocol
    print("commands:")
    for name in sorted(proto.commands):
        print(f"  {name:<12} {proto.commands[name]:<6} {proto.command_help.get(name, '')}")
    return 0


def cmd_send(cfg: BridgeConfig, *, context: Context, command: str, wait_s: float) -> int:
    """Connect, send one named command, print replies for wait_s seconds."""
    run = start_run(cfg, context=context)
    session = run.controller.session

    state = {"connected": None}
    changed = threading.Event()

    def _on_event(ev: SessionEvent) -> None:
        if isinstance(ev, StateChanged):
            state["connected"] = ev.connected
            changed.set()
        elif isinstance(ev, DataReceived):
            print(f"RX {ev.raw!r}", flush=True)

    unsubscribe = session.subscribe(_on_event)
    try:
        session.connect()
        connect_timeout = float(run.device_transport.params.get("connect_timeout_s", 3.0))
        changed.wait(timeout=connect_timeout + 1.0)
        if not state["connected"]:
            st = session.status()
            print(f"ERROR: not connected to {st.endpoint}")
            if st.last_error:
                print(f"Hint: {st.last_error}")
            return 1

        if not session.send_command(command):
            print(f"ERROR: failed to send {command}")
            return 1
        print(f"TX {command} ({context.protocol.get_command_token(command)})")

        deadline = time.monotonic() + max(0.0, wait_s)
        while time.monotonic() < deadline and session.is_connected:
            time.sleep(0.05)
        return 0
    finally:
        unsubscribe()
        session.disconnect()


SHELL_HELP = """\
commands:
  press N | release N | tap N   panel button join N
  status                        device session status
  feedback                      current feedback values
  help                          this text
  quit                          exit"""


def cmd_shell(cfg: BridgeConfig, *, context: Context, stdin: Optional[TextIO] = None) -> int:
    """Interactive panel simulator on top of a BridgeController."""
    run = start_run(cfg, context=context)
    controller = run.controller
    controller.add_sink(PrintFeedbackSink())

    print(f"panelbridge shell -> {run.device_transport.transport.describe()} (type 'help')")
    with controller:
        for line in stdin or sys.stdin:
            parts = line.split()
            if not parts:
                continue
            verb, args = parts[0].lower(), parts[1:]

            if verb in ("quit", "exit"):
                break
            if verb == "help":
                print(SHELL_HELP)
            elif verb == "status":
                st = controller.status()
                print(f"Session: state={st.state.value} driver={st.driver} endpoint={st.endpoint} "
                      f"rx_frames={st.frames_rx} tx_frames={st.frames_tx}")
                if st.last_error:
                    print(f"Last error [{st.last_error_code}]: {st.last_error}")
            elif verb == "feedback":
                snap = controller.feedback()
                for join in sorted(snap.bools):
                    print(f"  D{join:<3d} = {snap.bools[join]}")
                for join in sorted(snap.strings):
                    print(f"  S{join:<3d} = {snap.strings[join]!r}")
            elif verb in ("press", "release", "tap") and len(args) == 1 and args[0].isdigit():
                getattr(controller, verb)(int(args[0]))
                controller.wait_idle()
            else:
                print(f"?? {line.strip()} (type 'help')")
    return 0
