"""
Shared pytest fixtures for all da_server tests.

Provides a deterministic stand-in for KZG and a store rooted in a
temporary directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from da_server.storage import ExpiryIndex, FileBlobStore
from tests.da_server.helpers import FakeCommitter


@pytest.fixture
def committer() -> FakeCommitter:
    """Deterministic committer for verification tests."""
    return FakeCommitter()


@pytest.fixture
def index() -> ExpiryIndex:
    """Fresh expiry index."""
    return ExpiryIndex()


@pytest.fixture
def store(tmp_path: Path, index: ExpiryIndex) -> FileBlobStore:
    """Blob store in a temporary directory, wired to the `index` fixture."""
    return FileBlobStore(tmp_path / "blobs", index=index)
