import pytest
from prometheus_client import CollectorRegistry


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry per test, so billing gauges
    from one test never leak into the next.
    """
    return CollectorRegistry()
