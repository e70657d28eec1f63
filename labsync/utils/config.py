"""
Configuration management for LabSync AI.
Handles API keys, provider endpoints, latency thresholds, and environment settings.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings


class Settings(PydanticBaseSettings):
    """Application settings with environment variable support."""

    debug: bool = Field(False, env="DEBUG")
    reload: bool = Field(False, env="RELOAD")

    # LLM providers
    groq_api_key: Optional[str] = Field(None, env="GROQ_API_KEY")
    groq_endpoint: str = Field(
        "https://api.groq.com/openai/v1/chat/completions", env="GROQ_ENDPOINT"
    )
    openrouter_api_key: Optional[str] = Field(None, env="OPENROUTER_API_KEY")
    openrouter_endpoint: str = Field(
        "https://openrouter.ai/api/v1/chat/completions", env="OPENROUTER_ENDPOINT"
    )
    together_api_key: Optional[str] = Field(None, env="TOGETHER_API_KEY")
    together_endpoint: str = Field(
        "https://api.together.xyz/v1/chat/completions", env="TOGETHER_ENDPOINT"
    )
    fallback_llm_model: str = Field(
        "mistralai/mistral-7b-instruct", env="FALLBACK_LLM_MODEL"
    )

    # Storage
    supabase_url: Optional[str] = Field(None, env="SUPABASE_URL")
    supabase_key: Optional[str] = Field(None, env="SUPABASE_KEY")

    # SMS gateway
    sms_api_key: Optional[str] = Field(None, env="SMS_API_KEY")
    sms_api_endpoint: str = Field(
        "https://api.sms-provider.com/send", env="SMS_API_ENDPOINT"
    )
    sms_sender_id: str = Field("LabSyncAI", env="SMS_SENDER_ID")
    sms_max_length: int = Field(160, env="SMS_MAX_LENGTH")

    # Localization
    default_language: str = Field("en", env="DEFAULT_LANGUAGE")
    default_region: str = Field("All India", env="DEFAULT_REGION")

    # Latency Thresholds (ms)
    stt_final_threshold: int = Field(2000, env="STT_FINAL_THRESHOLD")
    llm_analysis_threshold: int = Field(4000, env="LLM_ANALYSIS_THRESHOLD")
    translation_threshold: int = Field(1000, env="TRANSLATION_THRESHOLD")
    tts_threshold: int = Field(2000, env="TTS_THRESHOLD")

    # Audio Processing
    audio_sample_rate: int = Field(16000, env="AUDIO_SAMPLE_RATE")
    audio_channels: int = Field(1, env="AUDIO_CHANNELS")

    # Uploads
    max_upload_mb: int = Field(20, env="MAX_UPLOAD_MB")

    # Security & Compliance
    enable_pii_stripping: bool = Field(True, env="ENABLE_PII_STRIPPING")

    request_timeout: int = Field(30, env="REQUEST_TIMEOUT")

    enable_caching: bool = Field(True, env="ENABLE_CACHING")
    cache_ttl: int = Field(3600, env="CACHE_TTL")

    # Logging
    log_level: str = Field("INFO", env="LOG_LEVEL")
    enable_structured_logging: bool = Field(True, env="ENABLE_STRUCTURED_LOGGING")
    compliance_log_file: Optional[str] = Field(
        "compliance.log", env="COMPLIANCE_LOG_FILE"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()


class ModelConfig:
    """Model-specific configuration constants."""

    TEMPERATURE = 0.7
    TOP_P = 1.0

    MAX_TOKENS_LLM = 2048
    MAX_TOKENS_SUMMARY = 512

    GROQ_MODEL = "mixtral-8x7b-32768"
    TOGETHER_CHAT_MODEL = "mistralai/Mixtral-8x7B-Instruct-v0.1"
    TOGETHER_WHISPER_MODEL = "openai/whisper-large-v3"

    # Characters of raw report text forwarded to the LLM
    RAW_TEXT_LIMIT = 1500

    SUPPORTED_LANGUAGES = {
        "en": "English",
        "hi": "Hindi",
        "bn": "Bengali",
        "te": "Telugu",
        "ta": "Tamil",
        "mr": "Marathi",
        "gu": "Gujarati",
        "kn": "Kannada",
        "ml": "Malayalam",
        "pa": "Punjabi",
        "ur": "Urdu",
        "or": "Odia",
        "as": "Assamese",
    }

    SUPPORTED_REGIONS = [
        "All India",
        "North India",
        "South India",
        "East India",
        "West India",
        "Northeast India",
    ]
