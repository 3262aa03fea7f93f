"""HTTP surface of ripple-api (FastAPI)."""

from ripple_api.api.app import create_app

__all__ = ["create_app"]
