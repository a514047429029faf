import asyncio
import time
from datetime import date, timedelta
from typing import Any, Sequence

import structlog

from oceanbill.billing import calculate_billing
from oceanbill.errors import FetchError
from oceanbill.metrics import MetricsUpdater
from oceanbill.models import BillingResult
from oceanbill.provider.base import ReadFetcher

logger = structlog.get_logger()

_DEFAULT_PERIOD_DAYS = 30


class BillingRunner:
    """
    BillingRunner fetches the reads of every configured measuring point,
    computes their billing and publishes the totals to the metrics store.

    This is the one place that decides what a failed fetch means: the
    error is logged and counted, and the measuring point is left out of
    the results rather than billed as zero. Remaining points still run.
    """

    def __init__(
        self,
        provider: "ReadFetcher",
        metrics_updater: "MetricsUpdater",
        module_id: "str",
        point_ids: "Sequence[str]",
        rate: "Any" = None,
        period_days: "int" = _DEFAULT_PERIOD_DAYS,
        interval_seconds: "int" = 3600,
    ) -> "None":
        self._provider = provider
        self._metrics = metrics_updater
        self._module_id = module_id
        self._point_ids = list(point_ids)
        self._rate = rate
        self._period_days = period_days
        self._interval = interval_seconds
        self._stop_event: "asyncio.Event" = asyncio.Event()

    def stop(self) -> "None":
        """
        signals the runner loop to stop after the current cycle.
        """
        self._stop_event.set()

    async def close(self) -> "None":
        await self._provider.close()

    def window(self, today: "date | None" = None) -> "tuple[date, date]":
        """
        returns the trailing billing window ending today.
        """
        end = today or date.today()
        return end - timedelta(days=self._period_days), end

    async def run(self) -> "None":
        """
        bills the trailing window every interval until stop() is called.
        """
        while not self._stop_event.is_set():
            start, end = self.window()
            logger.info("billing_cycle_start", start=str(start), end=str(end))

            results = await self.run_once(start, end)
            logger.info(
                "billing_cycle_end",
                billed=len(results),
                failed=len(self._point_ids) - len(results),
            )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass

    async def run_once(
        self,
        start: "date | str",
        end: "date | str",
    ) -> "dict[str, BillingResult]":
        """
        bills every measuring point once, one after the other. Points
        whose fetch failed are missing from the returned mapping.
        """
        results: "dict[str, BillingResult]" = {}
        for point_id in self._point_ids:
            result = await self._bill_point(point_id, start, end)
            if result is not None:
                results[point_id] = result

        return results

    async def _bill_point(
        self,
        point_id: "str",
        start: "date | str",
        end: "date | str",
    ) -> "BillingResult | None":
        started = time.monotonic()

        try:
            reads = await self._provider.fetch_reads(
                self._module_id, point_id, start, end
            )
        except FetchError as exc:
            logger.error(
                "billing_fetch_failed",
                provider=self._provider.name,
                measuring_point=point_id,
                kind=exc.kind,
                error=str(exc),
            )
            self._metrics.inc_fetch_error(point_id, exc.kind)
            return None

        result = calculate_billing(reads, self._rate)
        self._metrics.update_billing(point_id, result)
        self._metrics.observe_duration(point_id, time.monotonic() - started)
        self._metrics.set_last_success(point_id, time.time())

        logger.info(
            "billing_computed",
            measuring_point=point_id,
            line_items=len(result.line_items),
            total_energy=result.total_energy,
            total_cost=result.total_cost,
        )
        return result
