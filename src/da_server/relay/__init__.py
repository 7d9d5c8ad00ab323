"""
Relay module for replicating blobs between DA servers.

Provides:
- RelayClient: push, upload and verified fetch against relay peers
- Replicator: bounded background pool used by the server after each PUT
- BlobsBundle: blobs, commitments and proofs from a block-production payload
"""

from .bundle import BlobsBundle
from .client import RelayClient
from .config import DEFAULT_RETRIES, DEFAULT_TIMEOUT, RelayConfig
from .replicator import Replicator

__all__ = [
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT",
    "BlobsBundle",
    "RelayClient",
    "RelayConfig",
    "Replicator",
]
