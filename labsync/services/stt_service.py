"""
Speech-to-Text service for LabSync AI.

Faster-Whisper runs locally as the primary engine; Together AI's hosted
Whisper is the fallback when the local model is missing or fails.
"""

import asyncio
import io
import time
from typing import Any, Dict, Optional

import numpy as np
from faster_whisper import WhisperModel
from together import Together

from labsync.utils.audio import audio_processor
from labsync.utils.cache import cached, get_cache_stats
from labsync.utils.config import ModelConfig, settings
from labsync.utils.errors import TranscriptionError
from labsync.utils.logging import get_compliance_logger, get_logger, monitor_latency

logger = get_logger(__name__)

MIN_AUDIO_BYTES = 1000
MAX_AUDIO_BYTES = 50 * 1024 * 1024


class STTService:
    """Speech-to-Text service with local and hosted Whisper."""

    def __init__(self, model_size: str = "small", compute_type: str = "int8"):
        self.model_size = model_size
        self.compute_type = compute_type
        self.fw_model = None
        self.together_client = None
        self.models_warmed_up = False
        self.performance_stats = {
            "total_transcriptions": 0,
            "successful_transcriptions": 0,
            "failed_transcriptions": 0,
        }

    async def warm_up_models(self) -> None:
        """Load the local Whisper model and the Together client."""
        logger.info("Warming up STT models...")
        try:
            self.fw_model = WhisperModel(
                self.model_size, device="auto", compute_type=self.compute_type
            )
            logger.info(
                f"Faster-Whisper model loaded ({self.model_size}, {self.compute_type})"
            )
        except Exception as e:
            logger.warning(f"Failed to load Faster-Whisper model: {e}")

        if settings.together_api_key:
            try:
                self.together_client = Together(api_key=settings.together_api_key)
                logger.info("Together AI client initialized")
            except Exception as e:
                logger.warning(f"Failed to initialize Together AI client: {str(e)}")

        self.models_warmed_up = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    @staticmethod
    def _validate_audio(audio_data: bytes) -> None:
        if len(audio_data) < MIN_AUDIO_BYTES:
            raise ValueError("Audio too short")
        if len(audio_data) > MAX_AUDIO_BYTES:
            raise ValueError("Audio file too large (max 50MB)")

    async def _process_audio_for_stt(self, audio_data: bytes) -> bytes:
        try:
            return await audio_processor.process_audio_for_stt(audio_data)
        except Exception as e:
            raise TranscriptionError(f"Failed to process audio: {e}") from e

    @cached("stt_faster_whisper", ttl=3600)
    @monitor_latency("stt_faster_whisper", "faster-whisper")
    async def _transcribe_with_whisper(
        self, wav_audio: bytes, language: str
    ) -> Dict[str, Any]:
        """Transcribe normalised WAV audio with the local Faster-Whisper model."""
        if not self.fw_model:
            raise TranscriptionError("Faster-Whisper model not loaded")

        samples, _, _ = audio_processor._read_wav_to_np(wav_audio)
        arr = samples.astype(np.float32).mean(axis=1) / 32768.0

        def _run():
            segments, info = self.fw_model.transcribe(
                arr, beam_size=5, language=language, task="transcribe"
            )
            return " ".join(seg.text for seg in segments).strip(), info

        text, info = await asyncio.to_thread(_run)
        return {
            "text": text,
            "model": "faster_whisper",
            "provider": "faster_whisper",
            "confidence": float(getattr(info, "language_probability", 0.92) or 0.92),
            "fallback_used": False,
        }

    @cached("stt_together", ttl=1800)
    @monitor_latency("stt_together", ModelConfig.TOGETHER_WHISPER_MODEL)
    async def _transcribe_with_together(
        self, wav_audio: bytes, language: str
    ) -> Dict[str, Any]:
        """Transcribe normalised WAV audio with Together AI Whisper."""
        if not self.together_client:
            raise TranscriptionError("Together AI client not initialized")

        file_obj = io.BytesIO(wav_audio)
        file_obj.name = "audio.wav"  # the SDK reads the filename from the file object

        response = await asyncio.to_thread(
            self.together_client.audio.transcriptions.create,
            file=file_obj,
            model=ModelConfig.TOGETHER_WHISPER_MODEL,
            language=language,
            response_format="json",
        )
        return {
            "text": (getattr(response, "text", "") or "").strip(),
            "model": "together_whisper",
            "provider": "together",
            "confidence": 0.92,
            "fallback_used": True,
        }

    async def transcribe_audio(
        self,
        audio_data: bytes,
        language: str = "en",
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Transcribe recorded audio.

        Args:
            audio_data: Raw audio bytes in any format FFmpeg can read
            language: ISO language hint for Whisper
            user_id: User ID for compliance logging

        Returns:
            Dict with text, confidence, model and provider

        Raises:
            ValueError: audio is too short or too large
            TranscriptionError: every engine failed
        """
        self._validate_audio(audio_data)
        self.performance_stats["total_transcriptions"] += 1
        audio_id = f"audio_{int(time.time() * 1000)}"

        wav_audio = await self._process_audio_for_stt(audio_data)

        errors = []
        for name, call in (
            ("faster_whisper", self._transcribe_with_whisper),
            ("together", self._transcribe_with_together),
        ):
            try:
                result = await call(wav_audio, language)
            except Exception as e:
                logger.warning(f"STT engine {name} failed: {str(e)}")
                errors.append(f"{name}: {e}")
                continue

            self.performance_stats["successful_transcriptions"] += 1
            get_compliance_logger().log_audio_processing(
                audio_id=audio_id,
                size_bytes=len(audio_data),
                user_id=user_id or "unknown",
                operation="transcribe",
                success=True,
                provider=result["provider"],
            )
            return result

        self.performance_stats["failed_transcriptions"] += 1
        get_compliance_logger().log_audio_processing(
            audio_id=audio_id,
            size_bytes=len(audio_data),
            user_id=user_id or "unknown",
            operation="transcribe",
            success=False,
        )
        raise TranscriptionError(f"Transcription failed: {'; '.join(errors)}")

    def get_performance_stats(self) -> Dict[str, Any]:
        stats = dict(self.performance_stats)
        stats.update(
            {
                "models_warmed_up": self.models_warmed_up,
                "primary_model": "faster_whisper" if self.fw_model else "none",
                "fallback_model": "together_whisper" if self.together_client else "none",
            }
        )
        if settings.enable_caching:
            stats["cache_stats"] = get_cache_stats()
        return stats

    async def health_check(self) -> Dict[str, Any]:
        """Report which STT engines are loaded."""
        providers = {
            "faster_whisper": {"status": "loaded" if self.fw_model else "not_loaded"},
            "together": {
                "status": "configured" if self.together_client else "not_configured"
            },
        }
        return {
            "service": "stt",
            "status": "healthy"
            if self.fw_model or self.together_client
            else "degraded",
            "providers": providers,
            "timestamp": time.time(),
        }


# Global STT service instance
stt_service = STTService()
