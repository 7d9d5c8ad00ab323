"""
Metrics module for observability.

Provides counters, gauges, and histograms for tracking storage, replication
and expiry. Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    blobs_expired,
    blobs_not_found,
    blobs_served,
    blobs_stored,
    expiry_sweep_time,
    generate_metrics,
    puts_rejected,
    replication_queue_depth,
    replications_failed,
    replications_succeeded,
)

__all__ = [
    "REGISTRY",
    "blobs_expired",
    "blobs_not_found",
    "blobs_served",
    "blobs_stored",
    "expiry_sweep_time",
    "generate_metrics",
    "puts_rejected",
    "replication_queue_depth",
    "replications_failed",
    "replications_succeeded",
]
