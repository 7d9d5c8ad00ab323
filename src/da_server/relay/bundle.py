"""
Blobs bundle from a block-production payload.

The execution engine returns blobs alongside their KZG commitments and
proofs when it builds a payload. The sequencer uploads the bundle to the
DA relays before publishing the block.

JSON form (engine API convention):

    {
        "commitments": ["0x...", ...],
        "proofs": ["0x...", ...],
        "blobs": ["0x...", ...]
    }
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from da_server.types import Bytes48, StrictBaseModel


class BlobsBundle(StrictBaseModel):
    """Commitments, proofs and blobs produced for one execution payload."""

    commitments: list[Bytes48] = Field(default_factory=list)
    """KZG commitment for each blob, in blob order."""

    proofs: list[Bytes48] = Field(default_factory=list)
    """KZG proof for each blob. Carried along but not checked here."""

    blobs: list[bytes] = Field(default_factory=list)
    """Raw blob bytes."""

    @field_validator("blobs", mode="before")
    @classmethod
    def parse_hex_blobs(cls, v: Any) -> list[bytes]:
        """Accept hex strings as produced by the engine API JSON encoding."""
        if not isinstance(v, list):
            raise ValueError(f"blobs must be a list, got {type(v).__name__}")

        result = []
        for blob in v:
            if isinstance(blob, str):
                blob = bytes.fromhex(blob.removeprefix("0x"))
            elif isinstance(blob, bytearray):
                blob = bytes(blob)
            result.append(blob)
        return result
