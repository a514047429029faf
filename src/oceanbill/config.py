import os
from dataclasses import dataclass, field

from oceanbill.provider.cloudocean import CLOUD_OCEAN_BASE_URL


def _first_env(*names: "str") -> "str":
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


@dataclass
class Config:
    # listen_address: format ":9186" or
    # "0.0.0.0:9186", only used with --serve
    listen_address: "str" = ":9186"
    # seconds between billing cycles in serve mode
    interval: "int" = 3600
    # trailing window billed when no explicit dates are given
    period_days: "int" = 30
    log_level: "str" = "info"
    log_json: "bool" = False
    serve: "bool" = False
    start: "str" = ""
    end: "str" = ""

    api_key: "str" = ""
    base_url: "str" = CLOUD_OCEAN_BASE_URL
    module_id: "str" = ""
    measuring_points: "list[str]" = field(default_factory=list)
    # kept raw, the billing calculator coerces it
    rate: "str | None" = None
    # per-attempt request timeout in seconds, None disables it
    timeout: "float | None" = None

    @classmethod
    def from_env(cls) -> "Config":
        timeout = os.environ.get("CLOUD_OCEAN_TIMEOUT", "").strip()
        points = os.environ.get("CLOUD_OCEAN_MEASURING_POINTS", "")

        return cls(
            api_key=_first_env("CLOUD_OCEAN_API_KEY", "API_Key", "API_KEY"),
            base_url=_first_env("CLOUD_OCEAN_BASE_URL") or CLOUD_OCEAN_BASE_URL,
            module_id=_first_env("CLOUD_OCEAN_MODULE_ID"),
            measuring_points=[p.strip() for p in points.split(",") if p.strip()],
            rate=os.environ.get("RATE_PER_KWH"),
            timeout=float(timeout) if timeout else None,
        )

    @property
    def api_enabled(self) -> "bool":
        return bool(self.api_key)
