"""
Storage module for blob persistence.

Provides the blob store abstraction and its filesystem implementation,
plus the expiry index used by the TTL sweep.
"""

from .database import BlobStore
from .filesystem import FileBlobStore
from .index import ExpiryIndex

__all__ = [
    "BlobStore",
    "ExpiryIndex",
    "FileBlobStore",
]
