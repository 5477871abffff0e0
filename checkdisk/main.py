from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from checkdisk.badblocks_process import ScanSetupError
from checkdisk.checkpoint import CheckpointStore
from checkdisk.config import AppConfig, ConfigError, DebugConfig, load_config
from checkdisk.log_setup import setup_logging
from checkdisk.supervisor import describe_state, run_check

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> AppConfig:
    """Load the config file and apply command-line overrides."""
    config = load_config(args.config)

    if args.checkpoint:
        config.checkpoint.path = args.checkpoint
    if args.debug:
        config.debug.enabled = True
    if args.trace:
        config.debug.trace = True
    if args.verbose:
        config.debug.verbose = True

    return config


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run badblocks on a device and resume interrupted scans."
    )
    parser.add_argument("device", help="Device to check, e.g. /dev/sdb")
    parser.add_argument("--config", default=None,
                        help="Path to YAML config file (default: built-in settings)")
    parser.add_argument("--checkpoint", default=None,
                        help="Path to the checkpoint file (overrides config)")
    parser.add_argument("--fresh", action="store_true",
                        help="Ignore any saved state and check the whole device")
    parser.add_argument("--show", action="store_true",
                        help="Print the saved state for the device and exit")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug mode (verbose logging)")
    parser.add_argument("--trace", action="store_true",
                        help="Enable trace mode (writes trace file to debug/)")
    parser.add_argument("--verbose", action="store_true",
                        help="With --trace, also send trace output to terminal")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Entry point for checkdisk. Returns the process exit status."""
    args = _parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as exc:
        # No config to take debug settings from; the flags still apply
        root = setup_logging(
            DebugConfig(enabled=args.debug, trace=args.trace, verbose=args.verbose),
            args.device,
        )
        root.error("Configuration error: %s", exc)
        return 1
    root = setup_logging(config.debug, args.device)

    if args.show:
        state = CheckpointStore(config.checkpoint.path).load(args.device)
        print(describe_state(args.device, state))
        return 0

    try:
        result = await run_check(args.device, config, fresh=args.fresh)
    except ScanSetupError as exc:
        root.error("%s", exc)
        return 1
    return result.exit_code


def run() -> None:
    """Console script wrapper around :func:`main`."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
