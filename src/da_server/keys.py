"""
Canonical key encoding for URLs.

A key travels in request paths as `0x` followed by exactly 64 hex digits.
Input is case-insensitive. Output is always lowercase. Server routes and
the relay client both use these two functions, so the encoding cannot
drift between the write and read paths.
"""

from __future__ import annotations

from typing import Final

from da_server.errors import ValidationError
from da_server.types import Bytes32

KEY_PREFIX: Final = "0x"
"""Mandatory marker in front of the hex digits."""


def encode_key(key: bytes) -> str:
    """Encode raw key bytes as `0x`-prefixed lowercase hex."""
    return KEY_PREFIX + bytes(key).hex()


def decode_key(text: str) -> Bytes32:
    """
    Decode a path segment into a 32-byte key.

    Raises:
        ValidationError: If the prefix is missing, the length is wrong,
            or the digits are not hex.
    """
    if not text.startswith(KEY_PREFIX) and not text.startswith("0X"):
        raise ValidationError(f"Key must start with {KEY_PREFIX}: {text[:80]!r}")

    digits = text[len(KEY_PREFIX) :]
    if len(digits) != 2 * Bytes32.LENGTH:
        raise ValidationError(
            f"Key must have {2 * Bytes32.LENGTH} hex digits, got {len(digits)}"
        )

    try:
        return Bytes32(bytes.fromhex(digits))
    except ValueError as e:
        raise ValidationError(f"Key is not valid hex: {text[:80]!r}") from e
