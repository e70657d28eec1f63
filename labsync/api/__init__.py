"""API modules for LabSync AI."""

from labsync.api.main import app

__all__ = [
    "app",
]
