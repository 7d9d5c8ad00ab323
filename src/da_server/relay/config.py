"""Relay client configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

DEFAULT_RETRIES: Final = 5
"""Attempts per push when the configured count is unset or non-positive."""

DEFAULT_TIMEOUT: Final = 10.0
"""Per-attempt bound in seconds for any single relay request."""


@dataclass(frozen=True, slots=True)
class RelayConfig:
    """Configuration for talking to relay peers."""

    targets: tuple[str, ...] = ()
    """Base URLs of relay peers, in priority order."""

    retries: int = DEFAULT_RETRIES
    """Attempts per single-blob push. Non-positive values mean the default."""

    timeout: float = DEFAULT_TIMEOUT
    """Per-attempt timeout in seconds."""

    trusted_setup_path: Path | None = None
    """KZG trusted setup used to verify fetched blobs."""

    @property
    def max_attempts(self) -> int:
        """Effective number of attempts per push."""
        return self.retries if self.retries > 0 else DEFAULT_RETRIES
