from datetime import date
from typing import Any, Sequence

import structlog

from oceanbill.auth import AuthenticatedFetcher
from oceanbill.billing import coerce_number
from oceanbill.errors import MalformedResponse, PaginationLimitExceeded, UpstreamError
from oceanbill.models import MeteringRead

logger = structlog.get_logger()

CLOUD_OCEAN_BASE_URL = "https://api.develop.rve.ca"
DEFAULT_PAGE_SIZE = 50
# upper bound on pages per request window
DEFAULT_MAX_PAGES = 200


def to_ymd(value: "date | str") -> "str":
    """
    normalizes a date, datetime or ISO string to YYYY-MM-DD.
    """
    if isinstance(value, date):
        return value.isoformat()[:10]

    if isinstance(value, str):
        day = value.strip()[:10]
        # raises ValueError on anything that is not a calendar date
        date.fromisoformat(day)
        return day

    raise ValueError(f"invalid date: {value!r}")


def parse_read(record: "dict[str, Any]") -> "MeteringRead":
    """
    maps one raw read record from the API to a MeteringRead.
    The consumption value is kept as received.
    """
    return MeteringRead(
        date=record.get("timestamp") or record.get("time_stamp"),
        start_time=record.get("start_time") or record.get("startTime"),
        end_time=record.get("end_time") or record.get("endTime"),
        consumed_energy=record.get("consumption"),
    )


class CloudOceanProvider:
    """
    CloudOceanProvider implements the ReadFetcher protocol for the Cloud
    Ocean metering API. Every request goes through the AuthenticatedFetcher,
    and fetch errors are never swallowed here: deciding what a failed
    measuring point means is left to the caller.
    """

    def __init__(
        self,
        fetcher: "AuthenticatedFetcher",
        base_url: "str" = CLOUD_OCEAN_BASE_URL,
        page_size: "int" = DEFAULT_PAGE_SIZE,
        max_pages: "int" = DEFAULT_MAX_PAGES,
    ) -> "None":
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._max_pages = max_pages

    @property
    def name(self) -> "str":
        return "cloudocean"

    async def close(self) -> "None":
        await self._fetcher.close()

    def _point_url(self, module_id: "str", point_id: "str") -> "str":
        return f"{self._base_url}/v1/modules/{module_id}/measuring-points/{point_id}"

    async def fetch_reads(
        self,
        module_id: "str",
        point_id: "str",
        start: "date | str",
        end: "date | str",
    ) -> "list[MeteringRead]":
        """
        fetches all reads of a measuring point for the window,
        following limit/offset pagination.
        """
        url = f"{self._point_url(module_id, point_id)}/reads"
        records = await self._fetch_paginated(url, start, end)
        reads = [parse_read(r) for r in records]

        logger.info("reads_fetched", measuring_point=point_id, count=len(reads))
        return reads

    async def fetch_cdr(
        self,
        module_id: "str",
        point_id: "str",
        start: "date | str",
        end: "date | str",
    ) -> "list[dict[str, Any]]":
        """
        fetches the charge detail records of a measuring point, raw.
        """
        url = f"{self._point_url(module_id, point_id)}/cdr"
        records = await self._fetch_paginated(url, start, end)

        logger.info("cdr_fetched", measuring_point=point_id, count=len(records))
        return records

    async def validate_measuring_point(
        self,
        module_id: "str",
        point_id: "str",
    ) -> "bool":
        """
        checks that a measuring point exists. Only a 404 means "no";
        every other failure propagates.
        """
        try:
            await self._fetcher.get(self._point_url(module_id, point_id))
        except UpstreamError as exc:
            if exc.status == 404:
                logger.warning("measuring_point_not_found", measuring_point=point_id)
                return False
            raise

        return True

    async def fetch_module_consumption(
        self,
        module_id: "str",
        point_ids: "Sequence[str]",
        start: "date | str",
        end: "date | str",
    ) -> "dict[str, float]":
        """
        returns the total consumption in kWh per measuring point,
        fetched one point after the other.
        """
        consumption: "dict[str, float]" = {}
        for point_id in point_ids:
            reads = await self.fetch_reads(module_id, point_id, start, end)
            consumption[point_id] = sum(
                coerce_number(r.consumed_energy) for r in reads
            )
            logger.info(
                "consumption_calculated",
                measuring_point=point_id,
                kwh=consumption[point_id],
            )

        return consumption

    async def _fetch_paginated(
        self,
        url: "str",
        start: "date | str",
        end: "date | str",
    ) -> "list[dict[str, Any]]":
        records: "list[dict[str, Any]]" = []
        offset = 0
        start_day, end_day = to_ymd(start), to_ymd(end)

        # keep requesting pages until one comes back short, at most
        # max_pages of them
        for _ in range(self._max_pages):
            params: "dict[str, str | int]" = {
                "start": start_day,
                "end": end_day,
                "limit": self._page_size,
                "offset": offset,
            }
            logger.debug("cloudocean_fetch_page", url=url, offset=offset)
            resp = await self._fetcher.get(url, params)

            try:
                body = resp.json()
            except ValueError as exc:
                raise MalformedResponse(url, "body is not JSON") from exc

            page = body.get("data") if isinstance(body, dict) else None
            if not isinstance(page, list):
                page = []
            if not all(isinstance(r, dict) for r in page):
                raise MalformedResponse(url, "data holds non-object records")

            records.extend(page)
            if len(page) < self._page_size:
                return records

            offset += self._page_size

        logger.warning("cloudocean_page_limit", url=url, max_pages=self._max_pages)
        raise PaginationLimitExceeded(url, self._max_pages)
