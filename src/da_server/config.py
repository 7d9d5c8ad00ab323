"""
Server configuration loader.

Configuration files are JSON objects with PascalCase keys:

    {
        "ListenAddr": "0.0.0.0:8888",
        "StorePath": "./data",
        "SequencerIP": "10.0.0.5",
        "RelayTargets": ["http://relay-1:8888", "http://relay-2:8888"],
        "RelayRetries": 5,
        "ExpireHours": 336
    }

Files ending in .yaml or .yml are read as YAML. Anything else is read as
JSON, which keeps tab-indented JSON files loading.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Final

import yaml
from pydantic import Field, field_validator

from da_server.relay import DEFAULT_RETRIES, RelayConfig
from da_server.types import StrictBaseModel

YAML_SUFFIXES: Final = frozenset({".yaml", ".yml"})
"""File extensions loaded with the YAML parser."""


class ServerConfig(StrictBaseModel):
    """
    Everything the server needs at construction time.

    Field names use PascalCase aliases to match existing config files.
    Python code uses the snake_case attribute names.
    """

    listen_addr: str = Field(default="0.0.0.0:8888", alias="ListenAddr")
    """Address to bind, as host:port. An empty host binds all interfaces."""

    store_path: str = Field(default="./data", alias="StorePath")
    """Directory holding one file per blob."""

    sequencer_ip: str = Field(default="127.0.0.1", alias="SequencerIP")
    """
    Prefix a caller's address must have to write.

    Compared as a string prefix against the peer IP, not as a subnet.
    """

    relay_targets: list[str] = Field(default_factory=list, alias="RelayTargets")
    """Base URLs of relay peers. Empty disables replication."""

    relay_retries: int = Field(default=DEFAULT_RETRIES, alias="RelayRetries")
    """Attempts per push to each relay. Non-positive values mean the default."""

    expire_hours: int = Field(default=0, ge=0, alias="ExpireHours")
    """Retention window in hours. Zero disables expiry."""

    replication_workers: int = Field(default=4, gt=0, alias="ReplicationWorkers")
    """Concurrent replication tasks."""

    replication_queue_size: int = Field(default=256, gt=0, alias="ReplicationQueueSize")
    """Blobs that may wait for replication before PUTs are held back."""

    @field_validator("relay_retries", mode="after")
    @classmethod
    def default_non_positive_retries(cls, v: int) -> int:
        """Fall back to the default retry count for unset or non-positive values."""
        return v if v > 0 else DEFAULT_RETRIES

    @classmethod
    def from_file(cls, path: Path | str) -> ServerConfig:
        """
        Load configuration from a JSON or YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the content does not parse, is not a mapping or
                fails validation.
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                try:
                    data: Any = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ValueError(f"Invalid YAML in {path}: {e}") from e
            else:
                data = json.load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        return cls.model_validate(data)

    def listen_host_port(self) -> tuple[str, int]:
        """
        Split the listen address into host and port.

        Accepts "host:port", ":port" and "[ipv6]:port".

        Raises:
            ValueError: If the port is missing or not a number.
        """
        host, sep, port = self.listen_addr.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"Invalid listen address: {self.listen_addr!r}")
        host = host.strip("[]") or "0.0.0.0"
        return host, int(port)

    def relay_config(self) -> RelayConfig:
        """Build the relay client configuration."""
        return RelayConfig(targets=tuple(self.relay_targets), retries=self.relay_retries)
