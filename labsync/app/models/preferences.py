"""User preference records: language, region and low-resource settings."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from labsync.utils.config import ModelConfig

from .base import CamelModel


class ImageQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SyncFrequency(str, Enum):
    WHEN_CONNECTED = "when-connected"
    HOURLY = "hourly"
    DAILY = "daily"
    MANUAL = "manual"


class CompressionSettings(CamelModel):
    """Low Resource Mode switches."""

    enabled: bool = False
    image_quality: ImageQuality = ImageQuality.MEDIUM
    compress_reports: bool = False
    offline_mode: bool = False
    sync_frequency: SyncFrequency = SyncFrequency.WHEN_CONNECTED


class LanguagePreference(CamelModel):
    language: str = "en"
    region: str = "All India"

    @field_validator("language")
    @classmethod
    def check_language(cls, value: str) -> str:
        code = value.strip().lower()
        if code not in ModelConfig.SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language '{value}'")
        return code

    @field_validator("region")
    @classmethod
    def check_region(cls, value: str) -> str:
        if value not in ModelConfig.SUPPORTED_REGIONS:
            raise ValueError(f"Unsupported region '{value}'")
        return value


class UserPreferences(CamelModel):
    user_id: Optional[str] = None
    language: LanguagePreference = Field(default_factory=LanguagePreference)
    compression: CompressionSettings = Field(default_factory=CompressionSettings)
