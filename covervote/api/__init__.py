"""HTTP API for the cover validation engine.

Reviewers identify themselves, pull pairs, and push votes; the scraper
pushes batches to /api/sync.
"""

from .app import create_app, build_app
from .models import APIError, HealthResponse, LoginRequest, SyncRequest, VoteRequest

__all__ = [
    "create_app",
    "build_app",
    "APIError",
    "HealthResponse",
    "LoginRequest",
    "SyncRequest",
    "VoteRequest",
]
