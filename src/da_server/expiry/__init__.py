"""Time-based expiry of stored blobs."""

from .expirer import SECONDS_PER_HOUR, SWEEP_INTERVAL, Expirer, ExpirerState

__all__ = [
    "SECONDS_PER_HOUR",
    "SWEEP_INTERVAL",
    "Expirer",
    "ExpirerState",
]
