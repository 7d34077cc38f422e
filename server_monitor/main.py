import argparse
import sys

from rich.console import Console

from server_monitor import config, log, monitoring
from server_monitor.errors import InvalidConfig
from server_monitor.sampler import Sampler

LOGGER = log.get_logger(__name__)


def positive_float(value):
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: '{value}'") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="server-monitor",
        description="Print a system health report for the local host.",
    )
    parser.add_argument(
        "-r",
        "--realtime",
        action="store_true",
        help="refresh the report periodically until interrupted",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=positive_float,
        help="refresh interval in seconds for realtime mode",
    )
    parser.add_argument(
        "-f", "--file", help="also save each report to this file"
    )
    parser.add_argument(
        "-d",
        "--detail",
        action="store_true",
        help="show the CPU model and per-core usage",
    )
    parser.add_argument(
        "-n",
        "--network",
        action="store_true",
        help="show interfaces, listening ports and active connections",
    )
    parser.add_argument(
        "-c", "--config", help="path of an INI configuration file"
    )
    parser.add_argument(
        "--no-color", action="store_true", help="disable ANSI colors"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    try:
        conf = config.get_config(args.config) if args.config else config.config
    except InvalidConfig as exc:
        print(f"server-monitor: invalid configuration: {exc}", file=sys.stderr)
        return 2
    if args.config:
        log.configure(conf["log_dir"], conf["log_level"], force=True)

    LOGGER.info("Starting application")
    sampler = Sampler.from_config(
        conf, detail=args.detail, network_detail=args.network
    )
    console = Console(no_color=args.no_color, highlight=False)

    if args.realtime:
        if args.interval is not None:
            interval = args.interval
        else:
            interval = conf["refresh_interval"]
        console.print(
            f"Running in real-time mode with {interval} second interval. "
            "Press Ctrl+C to exit."
        )
        monitoring.monitor(
            sampler,
            conf["thresholds"],
            interval,
            file_path=args.file,
            console=console,
        )
    else:
        monitoring.tick(
            sampler, conf["thresholds"], file_path=args.file, console=console
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
