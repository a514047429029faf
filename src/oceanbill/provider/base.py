from datetime import date
from typing import Protocol, Sequence

from oceanbill.models import MeteringRead


class ReadFetcher(Protocol):
    """
    ReadFetcher stands as the common protocol for anything that
    supplies metering reads to a billing run.

    Implementations fetch the reads of one measuring point for a
    date window and return them in chronological order.
    """

    @property
    def name(self) -> "str": ...

    async def fetch_reads(
        self,
        module_id: "str",
        point_id: "str",
        start: "date | str",
        end: "date | str",
    ) -> "Sequence[MeteringRead]": ...

    async def close(self) -> "None": ...
