from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from oceanbill.models import BillingResult


class MetricsUpdater:
    """
    applies BillingResult data and fetch failures to Prometheus metrics,
    labelled by measuring point.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._total_energy: "Gauge" = Gauge(
            "oceanbill_billing_total_energy_kwh",
            "Total billed energy in kWh for the last billing window",
            ["measuring_point"],
            registry=registry,
        )
        self._total_cost: "Gauge" = Gauge(
            "oceanbill_billing_total_cost",
            "Total billed cost for the last billing window",
            ["measuring_point"],
            registry=registry,
        )
        self._line_items: "Gauge" = Gauge(
            "oceanbill_billing_line_items",
            "Number of line items in the last billing window",
            ["measuring_point"],
            registry=registry,
        )
        self._fetch_errors: "Counter" = Counter(
            "oceanbill_fetch_errors_total",
            "Total number of failed read fetches by measuring point and kind",
            ["measuring_point", "kind"],
            registry=registry,
        )
        self._duration: "Histogram" = Histogram(
            "oceanbill_billing_duration_seconds",
            "Duration of fetching and billing one measuring point",
            ["measuring_point"],
            registry=registry,
        )
        self._last_success: "Gauge" = Gauge(
            "oceanbill_last_billing_success_timestamp_seconds",
            "Unix timestamp of the last successful billing per measuring point",
            ["measuring_point"],
            registry=registry,
        )

    def update_billing(self, point_id: "str", result: "BillingResult") -> "None":
        """
        publishes the totals of a billing result. The gauges take the
        2-decimal totals, not the raw line amounts.
        """
        self._total_energy.labels(measuring_point=point_id).set(
            float(result.total_energy)
        )
        self._total_cost.labels(measuring_point=point_id).set(float(result.total_cost))
        self._line_items.labels(measuring_point=point_id).set(len(result.line_items))

    def inc_fetch_error(self, point_id: "str", kind: "str") -> "None":
        self._fetch_errors.labels(measuring_point=point_id, kind=kind).inc()

    def observe_duration(self, point_id: "str", duration_seconds: "float") -> "None":
        self._duration.labels(measuring_point=point_id).observe(duration_seconds)

    def set_last_success(self, point_id: "str", timestamp: "float") -> "None":
        self._last_success.labels(measuring_point=point_id).set(timestamp)
