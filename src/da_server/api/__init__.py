"""
API module for blob storage endpoints.

Provides HTTP endpoints for:
- /put/{key} - Store a blob (sequencer only)
- /get/{key} - Fetch a blob
- /health - Health check endpoint
- /metrics - Prometheus metrics endpoint
"""

from .routes import ROUTES, create_app
from .state import REPLICATOR, SEQUENCER_IP, STORE

__all__ = [
    "REPLICATOR",
    "ROUTES",
    "SEQUENCER_IP",
    "STORE",
    "create_app",
]
