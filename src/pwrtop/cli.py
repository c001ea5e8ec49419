"""Command-line interface for pwrtop."""

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from textual.logging import TextualHandler

from pwrtop.app import PwrtopApp
from pwrtop.config import MonitorConfig
from pwrtop.exceptions import DisplayUnavailableError, PwrtopError

logger = logging.getLogger("pwrtop")

EPILOG = """\
keys:
  c/m/p/n/w   sort by CPU, memory, PID, name, estimated power
  r           reverse sort direction
  /           filter by name or command line (empty clears)
  + / -       refresh faster / slower
  k           kill a process (asks for confirmation)
  q, Ctrl+C   quit

power model:
  watts = cpu% / 100 * TDP + resident GB * W/GB
  A rough linear estimate, not a measurement.
  CPU_TDP_W and MEM_W_PER_GB set the defaults for --cpu-tdp and --mem-watt-gb.
"""


def _version() -> str:
    try:
        return version("pwrtop")
    except PackageNotFoundError:
        return "unknown"


def build_parser(defaults: MonitorConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with power model defaults from ``defaults``."""
    parser = argparse.ArgumentParser(
        prog="pwrtop",
        description="Live system, process and estimated power monitor.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument(
        "-i",
        "--interval",
        type=int,
        metavar="MS",
        default=defaults.interval_ms,
        help=f"refresh interval in milliseconds, 200-60000 (default: {defaults.interval_ms})",
    )
    parser.add_argument(
        "-t",
        "--top",
        type=int,
        metavar="N",
        default=defaults.top_n,
        help=f"number of process rows (default: {defaults.top_n})",
    )
    parser.add_argument(
        "--cpu-tdp",
        type=float,
        metavar="W",
        default=defaults.cpu_tdp_watts,
        help=f"CPU watts at 100%% utilisation (default: {defaults.cpu_tdp_watts:g})",
    )
    parser.add_argument(
        "--mem-watt-gb",
        type=float,
        metavar="W",
        default=defaults.mem_watts_per_gb,
        help=f"watts per resident GB of memory (default: {defaults.mem_watts_per_gb:g})",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        metavar="FILE",
        default=None,
        help="write log messages to FILE",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    return parser


def configure_logging(log_file: Path | None, verbose: bool) -> None:
    """Route pwrtop logging to a file, or to the textual devtools console."""
    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = TextualHandler()
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def has_terminal() -> bool:
    """True when both stdin and stdout are attached to a terminal."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def config_from_args(args: argparse.Namespace) -> MonitorConfig:
    """Build a validated config from parsed arguments."""
    return MonitorConfig(
        interval_ms=args.interval,
        top_n=args.top,
        cpu_tdp_watts=args.cpu_tdp,
        mem_watts_per_gb=args.mem_watt_gb,
    ).validate()


def main(argv: list[str] | None = None) -> int:
    """Entry point for pwrtop."""
    try:
        defaults = MonitorConfig.from_env()
    except PwrtopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    try:
        config = config_from_args(args)
        configure_logging(args.log_file, args.verbose)
        if not has_terminal():
            raise DisplayUnavailableError()
        app = PwrtopApp(config)
    except (PwrtopError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("Starting pwrtop: %s", config)
    app.run()
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
