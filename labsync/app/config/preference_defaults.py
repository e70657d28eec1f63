"""Environment-backed defaults for user preferences."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

from ..models.preferences import (
    CompressionSettings,
    LanguagePreference,
    UserPreferences,
)


class PreferenceDefaultsSettings(BaseSettings):
    """Defaults applied to users who have not saved preferences yet."""

    default_language: str = Field("en", env="DEFAULT_LANGUAGE")
    default_region: str = Field("All India", env="DEFAULT_REGION")
    low_resource_enabled: bool = Field(False, env="LOW_RESOURCE_ENABLED")
    low_resource_image_quality: str = Field("medium", env="LOW_RESOURCE_IMAGE_QUALITY")
    low_resource_compress_reports: bool = Field(False, env="LOW_RESOURCE_COMPRESS_REPORTS")
    low_resource_offline_mode: bool = Field(False, env="LOW_RESOURCE_OFFLINE_MODE")
    low_resource_sync_frequency: str = Field(
        "when-connected", env="LOW_RESOURCE_SYNC_FREQUENCY"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache(maxsize=1)
def get_preference_defaults() -> UserPreferences:
    """Return cached preference defaults as a model."""

    settings = PreferenceDefaultsSettings()
    return UserPreferences(
        language=LanguagePreference(
            language=settings.default_language, region=settings.default_region
        ),
        compression=CompressionSettings(
            enabled=settings.low_resource_enabled,
            image_quality=settings.low_resource_image_quality,
            compress_reports=settings.low_resource_compress_reports,
            offline_mode=settings.low_resource_offline_mode,
            sync_frequency=settings.low_resource_sync_frequency,
        ),
    )
