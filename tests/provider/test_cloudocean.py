from datetime import date, datetime

import httpx
import pytest
import respx

from oceanbill.auth import AuthenticatedFetcher
from oceanbill.errors import (
    AuthExhausted,
    MalformedResponse,
    PaginationLimitExceeded,
    UpstreamError,
)
from oceanbill.provider.cloudocean import (
    CLOUD_OCEAN_BASE_URL,
    CloudOceanProvider,
    parse_read,
    to_ymd,
)

POINT_URL = f"{CLOUD_OCEAN_BASE_URL}/v1/modules/mod-1/measuring-points/mp-1"


def _provider(page_size: "int" = 50, max_pages: "int" = 200) -> "CloudOceanProvider":
    return CloudOceanProvider(
        AuthenticatedFetcher("tok-123"),
        page_size=page_size,
        max_pages=max_pages,
    )


class TestToYmd:
    def test_accepts_dates_datetimes_and_strings(self) -> "None":
        assert to_ymd(date(2024, 10, 16)) == "2024-10-16"
        assert to_ymd(datetime(2024, 10, 16, 13, 45)) == "2024-10-16"
        assert to_ymd("2024-10-16T13:45:00Z") == "2024-10-16"

    def test_rejects_garbage(self) -> "None":
        with pytest.raises(ValueError):
            to_ymd("not a date")


class TestParseRead:
    def test_maps_timestamp_and_consumption(self) -> "None":
        read = parse_read({"timestamp": "2025-01-01T00:00:00Z", "consumption": "1.5"})

        assert read.date == "2025-01-01T00:00:00Z"
        assert read.consumed_energy == "1.5"
        assert read.start_time is None
        assert read.end_time is None

    def test_falls_back_to_time_stamp(self) -> "None":
        read = parse_read(
            {
                "time_stamp": "2025-01-02",
                "start_time": "a",
                "end_time": "b",
                "consumption": 2,
            }
        )

        assert read.date == "2025-01-02"
        assert read.start_time == "a"
        assert read.end_time == "b"


class TestCloudOceanProviderFetchReads:
    @pytest.mark.asyncio
    @respx.mock
    async def test_fetches_and_parses_reads(self) -> "None":
        route = respx.get(f"{POINT_URL}/reads").mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {"timestamp": "2024-10-16T00:00:00Z", "consumption": 2.345},
                        {"timestamp": "2024-10-17T00:00:00Z", "consumption": "1.1"},
                    ]
                },
            )
        )

        reads = await _provider().fetch_reads(
            "mod-1", "mp-1", date(2024, 10, 16), "2024-11-25"
        )

        assert [r.consumed_energy for r in reads] == [2.345, "1.1"]
        params = route.calls[0].request.url.params
        assert params["start"] == "2024-10-16"
        assert params["end"] == "2024-11-25"
        assert params["limit"] == "50"
        assert params["offset"] == "0"

    @pytest.mark.asyncio
    @respx.mock
    async def test_follows_pagination(self) -> "None":
        route = respx.get(f"{POINT_URL}/reads").mock(
            side_effect=[
                httpx.Response(
                    200,
                    json={
                        "data": [
                            {"timestamp": "t1", "consumption": 1},
                            {"timestamp": "t2", "consumption": 2},
                        ]
                    },
                ),
                httpx.Response(
                    200,
                    json={"data": [{"timestamp": "t3", "consumption": 3}]},
                ),
            ]
        )

        reads = await _provider(page_size=2).fetch_reads(
            "mod-1", "mp-1", "2024-10-16", "2024-10-17"
        )

        assert [r.date for r in reads] == ["t1", "t2", "t3"]
        assert route.call_count == 2
        assert route.calls[1].request.url.params["offset"] == "2"

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_data_yields_no_reads(self) -> "None":
        respx.get(f"{POINT_URL}/reads").mock(
            return_value=httpx.Response(200, json={"message": "nothing"})
        )

        reads = await _provider().fetch_reads("mod-1", "mp-1", "2024-10-16", "2024-10-17")

        assert reads == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_propagates_auth_exhausted(self) -> "None":
        respx.get(f"{POINT_URL}/reads").mock(return_value=httpx.Response(401))

        with pytest.raises(AuthExhausted):
            await _provider().fetch_reads("mod-1", "mp-1", "2024-10-16", "2024-10-17")

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body_raises_malformed_response(self) -> "None":
        respx.get(f"{POINT_URL}/reads").mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )

        with pytest.raises(MalformedResponse) as exc_info:
            await _provider().fetch_reads("mod-1", "mp-1", "2024-10-16", "2024-10-17")

        assert exc_info.value.kind == "malformed"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_object_records_raise_malformed_response(self) -> "None":
        respx.get(f"{POINT_URL}/reads").mock(
            return_value=httpx.Response(200, json={"data": [{"consumption": 1}, "oops"]})
        )

        with pytest.raises(MalformedResponse):
            await _provider().fetch_reads("mod-1", "mp-1", "2024-10-16", "2024-10-17")

    @pytest.mark.asyncio
    @respx.mock
    async def test_stops_at_page_cap_when_offset_is_ignored(self) -> "None":
        # the same full page for every offset
        route = respx.get(f"{POINT_URL}/reads").mock(
            return_value=httpx.Response(
                200,
                json={"data": [{"consumption": 1}, {"consumption": 2}]},
            )
        )

        with pytest.raises(PaginationLimitExceeded) as exc_info:
            await _provider(page_size=2, max_pages=3).fetch_reads(
                "mod-1", "mp-1", "2024-10-16", "2024-10-17"
            )

        assert route.call_count == 3
        assert exc_info.value.max_pages == 3
        assert exc_info.value.kind == "pagination"

    @pytest.mark.asyncio
    @respx.mock
    async def test_full_last_page_within_cap_is_followed_by_empty_page(
        self,
    ) -> "None":
        route = respx.get(f"{POINT_URL}/reads").mock(
            side_effect=[
                httpx.Response(200, json={"data": [{"consumption": 1}]}),
                httpx.Response(200, json={"data": []}),
            ]
        )

        reads = await _provider(page_size=1, max_pages=2).fetch_reads(
            "mod-1", "mp-1", "2024-10-16", "2024-10-17"
        )

        assert len(reads) == 1
        assert route.call_count == 2


class TestCloudOceanProviderCdr:
    @pytest.mark.asyncio
    @respx.mock
    async def test_returns_raw_records(self) -> "None":
        respx.get(f"{POINT_URL}/cdr").mock(
            return_value=httpx.Response(200, json={"data": [{"rate": 0.15}]})
        )

        records = await _provider().fetch_cdr("mod-1", "mp-1", "2024-10-16", "2024-10-17")

        assert records == [{"rate": 0.15}]


class TestCloudOceanProviderValidate:
    @pytest.mark.asyncio
    @respx.mock
    async def test_true_when_point_exists(self) -> "None":
        respx.get(POINT_URL).mock(return_value=httpx.Response(200, json={}))

        assert await _provider().validate_measuring_point("mod-1", "mp-1") is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_false_on_404(self) -> "None":
        respx.get(POINT_URL).mock(return_value=httpx.Response(404))

        assert await _provider().validate_measuring_point("mod-1", "mp-1") is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_other_errors_propagate(self) -> "None":
        respx.get(POINT_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(UpstreamError):
            await _provider().validate_measuring_point("mod-1", "mp-1")


class TestCloudOceanProviderModuleConsumption:
    @pytest.mark.asyncio
    @respx.mock
    async def test_sums_consumption_per_point(self) -> "None":
        base = f"{CLOUD_OCEAN_BASE_URL}/v1/modules/mod-1/measuring-points"
        respx.get(f"{base}/mp-1/reads").mock(
            return_value=httpx.Response(
                200,
                json={"data": [{"consumption": 1.5}, {"consumption": "2.5"}]},
            )
        )
        respx.get(f"{base}/mp-2/reads").mock(
            return_value=httpx.Response(
                200,
                json={"data": [{"consumption": "bad"}, {"consumption": None}]},
            )
        )

        consumption = await _provider().fetch_module_consumption(
            "mod-1", ["mp-1", "mp-2"], "2024-10-16", "2024-10-17"
        )

        assert consumption == {"mp-1": 4.0, "mp-2": 0.0}
