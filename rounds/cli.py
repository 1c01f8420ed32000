#!/usr/bin/env python3
"""
Operator CLI for the round lifecycle.

Usage:
    # Run one watcher pass against the configured project
    rounds watch

    # Evaluate a round as if a lifecycle trigger had been delivered
    rounds control --group-id abc --round-id xyz

    # Start the first round of a newly created group
    rounds bootstrap --group-id abc

    # Replay at a fixed instant (ISO 8601, with offset)
    rounds --now 2026-10-18T23:00:01-03:00 watch
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import List, Optional

from rounds.exceptions import RoundsError
from rounds.runtime import build_controller, build_watcher
from shared.config.rounds_config import get_rounds_config
from shared.utils.structured_logging import configure_logging

logger = logging.getLogger(__name__)


def _parse_now(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise argparse.ArgumentTypeError("--now must include a UTC offset")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Round lifecycle operator tool',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--now', type=_parse_now, default=None,
                        help='Evaluate at this instant instead of the current time')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('watch', help='Run one watcher pass over all groups')

    control = subparsers.add_parser('control', help='Run the lifecycle controller for one round')
    control.add_argument('--group-id', required=True)
    control.add_argument('--round-id', required=True)

    bootstrap = subparsers.add_parser('bootstrap', help='Create the first round of a group')
    bootstrap.add_argument('--group-id', required=True)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_rounds_config()
    configure_logging(level='DEBUG' if args.verbose else config.logging_level)

    try:
        if args.command == 'watch':
            report = build_watcher(config, now=args.now).run()
            print(json.dumps(report.to_dict(), indent=2))
            return 1 if report.failures else 0

        controller = build_controller(config, now=args.now)
        if args.command == 'control':
            transition = controller.execute(args.group_id, args.round_id)
            print(f"Transition applied: {transition.value}")
        else:
            round_id = controller.bootstrap_group(args.group_id)
            print(f"Started round {round_id} for group {args.group_id}")
        return 0

    except RoundsError as e:
        logger.error(f"{args.command} failed: {e}")
        return 2


if __name__ == '__main__':
    sys.exit(main())
