"""
Prometheus metrics for observation delivery.
Registered in the global REGISTRY on import.
"""

from prometheus_client import Counter, Gauge, Histogram


OBSERVATIONS_ENQUEUED_TOTAL = Counter(
    "observations_enqueued_total",
    "Total number of observations accepted into the delivery queue",
)

OBSERVATION_DELIVERIES_TOTAL = Counter(
    "observation_deliveries_total",
    "Delivery attempts by outcome",
    ["outcome"],  # delivered | rate_limited | failed
)

OBSERVATIONS_DROPPED_TOTAL = Counter(
    "observations_dropped_total",
    "Observations dropped without delivery",
    ["reason"],  # expired | invalid | cleared
)

OBSERVATION_QUEUE_DEPTH = Gauge(
    "observation_queue_depth",
    "Observations currently waiting for delivery",
)

OBSERVATION_DELIVERY_LATENCY = Histogram(
    "observation_delivery_latency_seconds",
    "Latency of a single observation POST",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)


class MetricsRegistry:
    """Structured access to the delivery metrics."""

    enqueued_total = OBSERVATIONS_ENQUEUED_TOTAL
    deliveries_total = OBSERVATION_DELIVERIES_TOTAL
    dropped_total = OBSERVATIONS_DROPPED_TOTAL
    queue_depth = OBSERVATION_QUEUE_DEPTH
    delivery_latency = OBSERVATION_DELIVERY_LATENCY


# Singleton instance
metrics_registry = MetricsRegistry()
