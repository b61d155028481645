# src/hrsip/cli.py
from __future__ import annotations

import argparse
from hrsip.utils.logger import setup_logger

from hrsip.commands import groups as cmd_groups
from hrsip.commands import run as cmd_run
from hrsip.commands import summarize as cmd_summarize


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hrsip",
        description="MW-HR-SIP pipeline CLI (groups, run, summarize).",
    )

    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--log-file", type=str, default="hrsip.log", help="DEBUG log file ('' to disable).")

    subparsers = parser.add_subparsers(dest="command", required=True)

    cmd_groups.setup_parser(subparsers, parent)
    cmd_run.setup_parser(subparsers, parent)
    cmd_summarize.setup_parser(subparsers, parent)
    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = setup_logger(log_file=args.log_file or None, force=True)
    logger.debug("Parsed args: %r", args)
    args.func(args)


if __name__ == "__main__":
    main()
