"""HTTP API: health, monitoring, reputation score and pipeline records."""

from backend_passport.api_server.server import create_app

__all__ = ["create_app"]
