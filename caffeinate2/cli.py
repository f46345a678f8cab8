"""Command-line entry point: keep the machine awake while something runs."""

from __future__ import annotations

import argparse
from datetime import timedelta
import logging
import os
from pathlib import Path
import sys
from typing import Sequence

from dotenv import load_dotenv

from .config import Settings, load_settings
from .duration import parse_duration
from .errors import ConfigError, DurationError, Interrupted, RegistryError, SleepToggleError
from .guard import SleepGuard
from .liveness import ProcessProbe, SystemProcessProbe
from .power import make_sleep_toggle
from .registry import LockFileStore
from .signals import SignalRouter
from .utils.keep_awake import PowerAssertions
from .utils.logging_config import setup_logging
from .workload import run_command, sleep_for, wait_for_pid, wait_forever


EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_CANNOT_EXECUTE = 126
EXIT_NOT_FOUND = 127

ROOT_HINT = "This program must be run with root permissions. Try using sudo."


def _duration(value: str) -> timedelta:
    try:
        return parse_duration(value)
    except DurationError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _pid(value: str) -> int:
    try:
        pid = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid PID: {value!r}") from exc
    if pid <= 0:
        raise argparse.ArgumentTypeError(f"invalid PID: {value!r}")
    return pid


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI args."""
    parser = argparse.ArgumentParser(
        prog="caffeinate2",
        description="Temporarily prevent your system from sleeping.",
    )
    parser.add_argument("-d", "--display", action="store_true", help="prevent the display from sleeping")
    parser.add_argument("-i", "--idle", action="store_true", help="prevent the system from idle sleeping")
    parser.add_argument("-m", "--disk", action="store_true", help="prevent the disk from idle sleeping")
    parser.add_argument("-s", "--system", action="store_true", help="prevent system sleep (AC power only)")
    parser.add_argument("-u", "--user-active", action="store_true", help="declare that the user is active")
    parser.add_argument(
        "-e",
        "--entirely",
        action="store_true",
        help="disable sleep system-wide, shared with other instances (requires root)",
    )
    parser.add_argument("-t", "--timeout", type=_duration, help="keep awake for DURATION (e.g. 90, 1h 30m)")
    parser.add_argument("-w", "--waitfor", type=_pid, metavar="PID", help="keep awake until PID exits")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--debug", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--dry-run", action="store_true", help="do not change the system sleep setting")
    parser.add_argument("--lock-file", type=Path, help="lock file shared between instances")
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="command to run while awake")
    return parser.parse_args(argv)


def assertion_kinds(args: argparse.Namespace) -> list[str]:
    """Requested power assertions; idle sleep is prevented when nothing is asked for."""
    selected = [
        kind
        for kind, enabled in (
            ("display", args.display),
            ("idle", args.idle),
            ("disk", args.disk),
            ("system", args.system),
            ("user", args.user_active),
        )
        if enabled
    ]
    if not selected and not args.entirely:
        selected = ["idle"]
    return selected


def build_guard(args: argparse.Namespace, settings: Settings, logger: logging.Logger) -> SleepGuard:
    """Guard for this invocation; only ``--entirely`` joins the shared lock file."""
    kinds = assertion_kinds(args)
    assertions = PowerAssertions(kinds, logger=logger) if kinds else None
    if not args.entirely:
        return SleepGuard(None, None, assertions=assertions, logger=logger)

    store = LockFileStore(
        settings.lock_file,
        track_start_time=settings.track_start_time,
        logger=logger,
    )
    sleep_toggle = make_sleep_toggle("none" if args.dry_run else settings.sleep_toggle, logger=logger)
    return SleepGuard(store, sleep_toggle, assertions=assertions, logger=logger)


def describe(args: argparse.Namespace) -> str:
    if args.command:
        return "Preventing sleep until command finishes."
    if args.waitfor is not None:
        return f"Preventing sleep until process {args.waitfor} exits."
    if args.timeout is not None:
        return f"Preventing sleep for {int(args.timeout.total_seconds())} seconds."
    return "Preventing sleep until Ctrl+C pressed."


def run_workload(args: argparse.Namespace, probe: ProcessProbe) -> int:
    """Block for as long as the invocation asks; return the exit status."""
    if args.command:
        return run_command(args.command, timeout=args.timeout, waitfor=args.waitfor, probe=probe)
    if args.waitfor is not None:
        return wait_for_pid(args.waitfor, timeout=args.timeout, probe=probe)
    if args.timeout is not None:
        return sleep_for(args.timeout)
    return wait_forever()


def main(argv: Sequence[str] | None = None) -> int:
    """Program entry point."""
    load_dotenv()
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    if args.lock_file is not None:
        settings.lock_file = args.lock_file
    if args.verbose:
        settings.verbose = True

    logger = setup_logging(verbose=settings.verbose, debug=args.debug, log_file=settings.log_file)
    probe = SystemProcessProbe()

    if args.waitfor is not None and not probe.is_alive(args.waitfor):
        logger.error("Error: process %d does not exist", args.waitfor)
        return EXIT_FAILURE

    try:
        guard = build_guard(args, settings, logger)
    except ConfigError as exc:
        logger.error("Error: %s", exc)
        return EXIT_USAGE

    with SignalRouter(logger=logger) as router:
        try:
            guard.acquire()
        except Interrupted:
            return router.exit_status or EXIT_FAILURE
        except RegistryError as exc:
            logger.error("Error: %s", exc)
            return EXIT_FAILURE
        except SleepToggleError as exc:
            logger.error("Error: %s", exc)
            if os.geteuid() != 0:
                logger.error(ROOT_HINT)
            return EXIT_FAILURE

        print(describe(args), flush=True)
        try:
            status = run_workload(args, probe)
        except Interrupted:
            status = router.exit_status or EXIT_FAILURE
        except FileNotFoundError:
            logger.error("Error: command not found: %s", args.command[0])
            status = EXIT_NOT_FOUND
        except PermissionError:
            logger.error("Error: permission denied: %s", args.command[0])
            status = EXIT_CANNOT_EXECUTE
        finally:
            with router.shielded():
                guard.release()

    return status


if __name__ == "__main__":
    sys.exit(main())
