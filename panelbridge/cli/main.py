# panelbridge/cli/main.py
from __future__ import annotations

from typing import Optional

from panelbridge.core.errors import BridgeError

from panelbridge.cli.args import parse_args
from panelbridge.cli.commands import (
    configure_logging,
    cmd_transports,
    cmd_joins,
    cmd_send,
    cmd_shell,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args, cfg, context = parse_args(argv)
        configure_logging(cfg.log_level, cfg.log_file)

        if args.cmd == "transports":
            return cmd_transports(context=context)
        if args.cmd == "joins":
            return cmd_joins(context=context)
        if args.cmd == "send":
            return cmd_send(cfg, context=context, command=args.command, wait_s=args.wait)
        if args.cmd == "shell":
            return cmd_shell(cfg, context=context)

        return 2
    except BridgeError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
