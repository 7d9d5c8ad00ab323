"""
Metric registry using prometheus_client.

Provides pre-defined metrics for the DA server.
Exposes metrics in Prometheus text format via the /metrics endpoint.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Dedicated registry, so default Python process metrics stay out.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Protocol Handlers
# -----------------------------------------------------------------------------

blobs_stored = Counter(
    "da_blobs_stored_total",
    "Blobs written through the put endpoint",
    registry=REGISTRY,
)

blobs_served = Counter(
    "da_blobs_served_total",
    "Blobs returned by the get endpoint",
    registry=REGISTRY,
)

blobs_not_found = Counter(
    "da_blobs_not_found_total",
    "Get requests for keys that are not stored",
    registry=REGISTRY,
)

puts_rejected = Counter(
    "da_puts_rejected_total",
    "Put requests rejected because the caller is not the sequencer",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Replication
# -----------------------------------------------------------------------------

replications_succeeded = Counter(
    "da_replications_succeeded_total",
    "Blob pushes to a relay target that succeeded",
    registry=REGISTRY,
)

replications_failed = Counter(
    "da_replications_failed_total",
    "Blob pushes to a relay target that exhausted their retries",
    registry=REGISTRY,
)

replication_queue_depth = Gauge(
    "da_replication_queue_depth",
    "Blobs waiting to be replicated",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Expiry
# -----------------------------------------------------------------------------

blobs_expired = Counter(
    "da_blobs_expired_total",
    "Blobs deleted by the expiry sweep",
    registry=REGISTRY,
)

expiry_sweep_time = Histogram(
    "da_expiry_sweep_seconds",
    "Expiry sweep duration",
    buckets=(0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0),
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
