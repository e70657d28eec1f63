"""Configuration modules for LabSync AI."""

from labsync.app.config.preference_defaults import get_preference_defaults
from labsync.app.config.reference_ranges import (
    REGIONAL_REFERENCE_RANGES,
    SAMPLE_RESULTS,
    get_reference_range,
)

__all__ = [
    "get_preference_defaults",
    "REGIONAL_REFERENCE_RANGES",
    "SAMPLE_RESULTS",
    "get_reference_range",
]
