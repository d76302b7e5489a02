"""HTTP API."""

from crosswap.api.app import create_app

__all__ = ["create_app"]
