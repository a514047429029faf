import asyncio
import json
import signal
import sys
from datetime import date, timedelta

import structlog
from prometheus_client import start_http_server

from oceanbill.auth import AuthenticatedFetcher
from oceanbill.cli import parse_args
from oceanbill.config import Config
from oceanbill.logging import setup_logging
from oceanbill.metrics import MetricsUpdater
from oceanbill.provider.cloudocean import CloudOceanProvider
from oceanbill.runner import BillingRunner

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9186' or '0.0.0.0:9186'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def resolve_window(config: "Config", today: "date | None" = None) -> "tuple[date, date]":
    """
    turns the --start/--end flags into a billing window. A missing end
    means today, a missing start means period_days before the end.
    """
    end = date.fromisoformat(config.end[:10]) if config.end else today or date.today()
    if config.start:
        start = date.fromisoformat(config.start[:10])
    else:
        start = end - timedelta(days=config.period_days)
    return start, end


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, json=config.log_json)

    if not config.api_enabled:
        raise SystemExit(
            "No API key configured. Set CLOUD_OCEAN_API_KEY environment variable."
        )
    if not config.module_id or not config.measuring_points:
        raise SystemExit(
            "Set CLOUD_OCEAN_MODULE_ID and CLOUD_OCEAN_MEASURING_POINTS."
        )

    fetcher = AuthenticatedFetcher(config.api_key, timeout=config.timeout)
    provider = CloudOceanProvider(fetcher, base_url=config.base_url)
    runner = BillingRunner(
        provider,
        MetricsUpdater(),
        config.module_id,
        config.measuring_points,
        rate=config.rate,
        period_days=config.period_days,
        interval_seconds=config.interval,
    )

    if config.serve:
        host, port = _parse_listen_address(config.listen_address)
        start_http_server(port, addr=host)
        logger.info("metrics_server_started", host=host, port=port)

    async def _run() -> "int":
        try:
            if config.serve:
                loop = asyncio.get_running_loop()
                # for SIGINT and SIGTERM, signal the runner
                # to stop gracefully
                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, runner.stop)
                await runner.run()
                return 0

            start, end = resolve_window(config)
            results = await runner.run_once(start, end)
            json.dump(
                {point: result.to_dict() for point, result in results.items()},
                sys.stdout,
                indent=2,
            )
            sys.stdout.write("\n")
            return 0 if len(results) == len(config.measuring_points) else 2
        finally:
            await runner.close()
            logger.info("shutdown_complete")

    sys.exit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
