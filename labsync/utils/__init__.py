"""Utility modules for LabSync AI."""

from labsync.utils.config import settings, ModelConfig
from labsync.utils.logging import (
    get_logger,
    get_latency_logger,
    get_compliance_logger,
    monitor_latency,
    RequestContext,
)
from labsync.utils.cache import CacheManager, cached

__all__ = [
    "settings",
    "ModelConfig",
    "get_logger",
    "get_latency_logger",
    "get_compliance_logger",
    "monitor_latency",
    "RequestContext",
    "CacheManager",
    "cached",
]
