import argparse

from oceanbill.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="oceanbill",
        description="Energy billing from Cloud Ocean metering reads",
    )
    parser.add_argument(
        "--start",
        default="",
        help="First day of the billing window, YYYY-MM-DD",
    )
    parser.add_argument(
        "--end",
        default="",
        help="Last day of the billing window, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--rate",
        default=None,
        help="Price per kWh (default: RATE_PER_KWH)",
    )
    parser.add_argument(
        "--period-days",
        dest="period_days",
        type=int,
        default=30,
        help="Trailing window in days when --start is not given (default: 30)",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help=(
            "Run continuously and expose billing totals as Prometheus metrics, "
            "billing the trailing --period-days window each cycle"
        ),
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9186",
        help="Address to listen on with --serve (default: :9186)",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=3600,
        help="Seconds between billing cycles with --serve (default: 3600)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.json",
        dest="log_json",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    args = parser.parse_args(argv)
    if args.serve and (args.start or args.end):
        parser.error(
            "--start/--end cannot be combined with --serve, which bills "
            "the trailing --period-days window each cycle"
        )

    config = Config.from_env()
    config.start = args.start
    config.end = args.end
    if args.rate is not None:
        config.rate = args.rate
    config.period_days = args.period_days
    config.serve = args.serve
    config.listen_address = args.listen_address
    config.interval = args.interval
    config.log_level = args.log_level
    config.log_json = args.log_json
    return config
