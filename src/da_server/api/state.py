"""Application state keys shared by the route handlers."""

from __future__ import annotations

from aiohttp import web

from da_server.relay import Replicator
from da_server.storage import BlobStore

STORE = web.AppKey("store", BlobStore)
"""Blob store backing the put and get endpoints."""

SEQUENCER_IP = web.AppKey("sequencer_ip", str)
"""Address prefix a caller must have to write."""

REPLICATOR = web.AppKey("replicator", Replicator)
"""Replication pool, absent when no relay targets are configured."""
