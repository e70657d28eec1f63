"""
LabSync AI - Medical report analysis dashboard backend
"""

__version__ = "1.0.0"
__author__ = "LabSync AI Team"
__description__ = "Lab report extraction, AI analysis and patient guidance API"

from labsync import api
from labsync import app
from labsync import services
from labsync import utils

__all__ = [
    "api",
    "app",
    "services",
    "utils",
    "__version__",
    "__author__",
    "__description__",
]
