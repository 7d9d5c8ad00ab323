"""DA server process: store, API, replication and expiry wired together."""

from .node import DAServer

__all__ = [
    "DAServer",
]
