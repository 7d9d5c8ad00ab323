"""API endpoint handlers."""

from . import blobs, health, metrics

__all__ = [
    "blobs",
    "health",
    "metrics",
]
