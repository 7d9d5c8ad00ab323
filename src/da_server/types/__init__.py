"""Reusable type definitions for the DA server."""

from .base import StrictBaseModel
from .byte_arrays import BaseBytes, Bytes32, Bytes48

__all__ = [
    "BaseBytes",
    "Bytes32",
    "Bytes48",
    "StrictBaseModel",
]
