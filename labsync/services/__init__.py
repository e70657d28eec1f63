"""Provider-facing services for LabSync AI."""

from labsync.services.llm_service import LLMService, llm_service
from labsync.services.storage_service import StorageService, storage_service
from labsync.services.stt_service import STTService, stt_service
from labsync.services.translation_service import TranslationService, translation_service
from labsync.services.tts_service import TTSService, tts_service

__all__ = [
    "LLMService",
    "llm_service",
    "StorageService",
    "storage_service",
    "STTService",
    "stt_service",
    "TranslationService",
    "translation_service",
    "TTSService",
    "tts_service",
]
