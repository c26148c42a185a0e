#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Perle Automation Entry Point
============================
Runs the full fetch → render → deliver → publish cycle, either once or on
the configured daily schedule, and exposes the single steps as subcommands.

Usage:
    pi-perle run --once              # one cycle, then exit
    pi-perle run                     # stay resident, two cycles a day
    pi-perle fetch [--source page|sheet]
    pi-perle render (--perla-id ID | --text TEXT)
    pi-perle deliver --perla-id ID --video PATH [--channel ...]
    pi-perle status
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from pi_perle_stack.config.logging_config import configure_logging
from pi_perle_stack.config.settings import reload_settings
from pi_perle_stack.errors import PerleError
from pi_perle_stack.pipeline import step1_fetch_perle, step2_render_video, step3_deliver_video
from pi_perle_stack.pipeline.orchestrator import CycleResult
from pi_perle_stack.pipeline.scheduler import PerleScheduler
from pi_perle_stack.pipeline.wiring import CHANNELS, SOURCES, build_orchestrator, build_store

logger = logging.getLogger("pipeline.main")


def main(once: bool = True) -> Optional[CycleResult]:
    """
    Run the automation.

    Args:
        once: run a single cycle and return its result; otherwise block
              in the scheduler until interrupted.
    """
    logger.info("=== PERLE GRUPPOCLASSE AUTOMATION ===")
    orchestrator = build_orchestrator()

    if once:
        logger.info("Running in ONE-TIME mode")
        result = orchestrator.run_cycle()
        print(json.dumps(result.to_dict(), ensure_ascii=False))
        return result

    logger.info("Running in SCHEDULER mode")
    PerleScheduler(orchestrator).start()
    return None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pi-perle", description="Perle video automation")
    parser.add_argument("--env-file", help="Extra .env file to load (overrides environment)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Run cycles (scheduled by default)")
    run.add_argument("--once", action="store_true", help="Run exactly one cycle and exit")

    fetch = sub.add_parser("fetch", help="Fetch perle into the database")
    fetch.add_argument("--source", choices=sorted(SOURCES), default=None)

    render = sub.add_parser("render", help="Render a video without delivering it")
    group = render.add_mutually_exclusive_group(required=True)
    group.add_argument("--perla-id")
    group.add_argument("--text")

    deliver = sub.add_parser("deliver", help="Deliver a rendered video and mark it published")
    deliver.add_argument("--perla-id", required=True)
    deliver.add_argument("--video", required=True)
    deliver.add_argument("--channel", choices=sorted(CHANNELS), default=None)

    sub.add_parser("status", help="Show content database statistics")
    return parser


def cli(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.env_file:
        reload_settings(args.env_file)
    configure_logging(level=args.log_level.upper() if args.log_level else None)

    command = args.command or "run"
    try:
        if command == "run":
            result = main(once=getattr(args, "once", False))
            return 0 if result is None or result.ok else 1
        if command == "fetch":
            step1_fetch_perle.main(source=args.source)
        elif command == "render":
            step2_render_video.main(perla_id=args.perla_id, text=args.text)
        elif command == "deliver":
            step3_deliver_video.main(
                perla_id=args.perla_id, video_path=args.video, channel=args.channel
            )
        elif command == "status":
            store = build_store()
            print(json.dumps({"store": str(store.path), **store.stats()}, ensure_ascii=False))
    except (PerleError, ValueError, FileNotFoundError) as exc:
        logger.error("%s failed: %s", command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli())
