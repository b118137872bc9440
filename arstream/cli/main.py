from __future__ import annotations

import logging
from typing import Optional

from arstream.core.errors import ArStreamError
from arstream.common.logging_config import configure_logging

from arstream.cli.args import build_parser, config_from_args
from arstream.cli.commands import cmd_probe, cmd_stream


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose == 1:
        level = logging.INFO

    try:
        cfg = config_from_args(args)
        configure_logging(level, cfg.log_file)

        if args.cmd == "stream":
            return cmd_stream(args, cfg)
        if args.cmd == "probe":
            return cmd_probe(args, cfg)

        return 2
    except ArStreamError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
