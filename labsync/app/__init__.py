"""App modules for LabSync AI."""

from labsync.app import config
from labsync.app import models
from labsync.app import routers
from labsync.app import services

__all__ = [
    "config",
    "models",
    "routers",
    "services",
]
