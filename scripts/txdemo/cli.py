"""
TxDemo command line.

Usage:
    txdemo                  Launch the interactive TUI
    txdemo --list           Print resources and their demonstrations, then exit
    txdemo --step-delay 0   Play demonstrations without pauses
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from txdemo.config import Settings
from txdemo.logging_setup import setup_logging
from txdemo.providers import Context, ResourceRegistry
from txdemo.sample import default_registry

logger = logging.getLogger(__name__)


def print_resources(resources: ResourceRegistry) -> int:
    """Start each resource just long enough to list its demonstrations."""
    ctx = Context()
    status = 0
    for resource in resources.all():
        print(f"{resource.name}: {resource.description}")
        try:
            resource.start(ctx)
        except Exception as e:
            print(f"  (failed to start: {e})")
            status = 1
            continue
        try:
            for task in resource.list_tasks():
                print(f"  - {task.name} [{task.category}]")
        finally:
            try:
                resource.stop(ctx)
            except Exception as e:
                logger.warning("failed to stop %s: %s", resource.name, e)
    return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Transaction isolation levels, demonstrated live",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print resources and their demonstrations and exit (no TUI)",
    )
    parser.add_argument(
        "--step-delay",
        type=float,
        help="Seconds between demonstration steps",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Where to write logs (default: .txdemo/txdemo.log)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    overrides = {}
    if args.step_delay is not None:
        overrides["step_delay"] = max(args.step_delay, 0.0)
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if args.log_level is not None:
        overrides["log_level"] = logging.getLevelName(args.log_level)
    return dataclasses.replace(base, **overrides)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args, Settings.from_env())
    setup_logging(settings.log_file, settings.log_level)

    resources = default_registry(step_delay=settings.step_delay)

    if args.list:
        return print_resources(resources)

    from txdemo.app import run

    logger.info("starting TUI with %d resource(s)", len(resources))
    run(resources, settings=settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
