"""Web API for fitcal."""

from .app import create_app

__all__ = ["create_app"]
