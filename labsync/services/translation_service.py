"""
Translation service for LabSync AI.
Uses Google Translator through deep-translator; the LLM is never used for translation.
"""

import asyncio
import time
from typing import Any, Dict, List

from deep_translator import GoogleTranslator

from labsync.utils.cache import cached, get_cache_stats
from labsync.utils.config import ModelConfig, settings
from labsync.utils.logging import get_logger, monitor_latency

logger = get_logger(__name__)


class TranslationService:
    """Translation service using Google Translator."""

    def __init__(self):
        self.performance_stats = {
            "total_translations": 0,
            "successful_translations": 0,
            "failed_translations": 0,
        }

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    @staticmethod
    def is_supported(language: str) -> bool:
        return (language or "").lower() in ModelConfig.SUPPORTED_LANGUAGES

    def _get_google_language_code(self, language: str) -> str:
        code = (language or "en").lower()
        if code not in ModelConfig.SUPPORTED_LANGUAGES:
            return "en"
        return code

    @cached("translation_google", ttl=3600)
    @monitor_latency("translation_google", "google-translator")
    async def translate_text(
        self, text: str, source_lang: str = "en", target_lang: str = "en"
    ) -> Dict[str, Any]:
        """
        Translate text using Google Translator with latency monitoring.

        Text passes through untouched when it is blank or when source and
        target resolve to the same language.

        Returns:
            Dict with translated_text plus language and provider metadata
        """
        src_code = self._get_google_language_code(source_lang)
        tgt_code = self._get_google_language_code(target_lang)
        if not text.strip() or src_code == tgt_code:
            return {
                "translated_text": text,
                "source_language": source_lang,
                "target_language": target_lang,
                "model": "passthrough",
                "provider": "none",
                "fallback_used": False,
            }

        self.performance_stats["total_translations"] += 1
        try:
            translator = GoogleTranslator(source=src_code, target=tgt_code)
            translated_text = await asyncio.to_thread(translator.translate, text)
        except Exception as e:
            self.performance_stats["failed_translations"] += 1
            logger.error(f"Google Translator failed: {e}")
            raise

        self.performance_stats["successful_translations"] += 1
        return {
            "translated_text": translated_text or text,
            "source_language": source_lang,
            "target_language": target_lang,
            "model": "google-translator",
            "provider": "google",
            "fallback_used": False,
        }

    async def translate(self, text: str, target_lang: str, source_lang: str = "en") -> str:
        """Translate and return plain text, keeping the original if the provider fails."""
        try:
            result = await self.translate_text(text, source_lang, target_lang)
            return result["translated_text"]
        except Exception as e:
            logger.warning(
                f"Translation to {target_lang} failed, keeping original text: {e}"
            )
            return text

    async def translate_batch(
        self, texts: List[str], target_lang: str, source_lang: str = "en"
    ) -> List[str]:
        return await asyncio.gather(
            *(self.translate(text, target_lang, source_lang) for text in texts)
        )

    def get_supported_languages(self) -> Dict[str, str]:
        return dict(ModelConfig.SUPPORTED_LANGUAGES)

    async def health_check(self) -> Dict[str, Any]:
        return {
            "service": "translation",
            "status": "healthy",
            "providers": {"google": {"status": "configured"}},
            "timestamp": time.time(),
        }

    def get_performance_stats(self) -> Dict[str, Any]:
        stats = dict(self.performance_stats)
        stats["provider"] = "google"
        if settings.enable_caching:
            stats["cache_stats"] = get_cache_stats()
        return stats


# Global translation service instance
translation_service = TranslationService()
