"""
Unit tests for STT service.
Tests Faster-Whisper and Together AI fallback functionality.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest

from labsync.services.stt_service import STTService
from labsync.utils.errors import TranscriptionError


class TestSTTService:
    """Test cases for STT service."""

    @pytest.fixture
    def stt_service_instance(self):
        service = STTService()
        service._process_audio_for_stt = AsyncMock(return_value=b"wav-bytes")
        return service

    @pytest.fixture
    def sample_audio_data(self):
        return b"\x00\x01" * 2048

    @pytest.mark.asyncio
    async def test_transcribe_audio_success_faster_whisper(
        self, stt_service_instance, sample_audio_data
    ):
        segments = [MagicMock(text="My hemoglobin"), MagicMock(text="is low.")]
        info = MagicMock(language_probability=0.97)
        stt_service_instance.fw_model = MagicMock()
        stt_service_instance.fw_model.transcribe.return_value = (segments, info)

        samples = np.zeros((1600, 1), dtype=np.int16)
        with patch(
            "labsync.services.stt_service.audio_processor._read_wav_to_np",
            return_value=(samples, 16000, 1),
        ):
            result = await stt_service_instance.transcribe_audio(sample_audio_data, "en")

        assert result["text"] == "My hemoglobin is low."
        assert result["confidence"] == pytest.approx(0.97)
        assert result["provider"] == "faster_whisper"
        assert result["fallback_used"] is False
        assert stt_service_instance.performance_stats["successful_transcriptions"] == 1

    @pytest.mark.asyncio
    async def test_transcribe_audio_fallback_to_together(
        self, stt_service_instance, sample_audio_data
    ):
        stt_service_instance.together_client = MagicMock()
        stt_service_instance.together_client.audio.transcriptions.create.return_value = MagicMock(
            text=" What does LDL mean? "
        )

        # No local model loaded, so Faster-Whisper fails first
        result = await stt_service_instance.transcribe_audio(sample_audio_data, "en")

        assert result["text"] == "What does LDL mean?"
        assert result["provider"] == "together"
        assert result["fallback_used"] is True

    @pytest.mark.asyncio
    async def test_transcribe_audio_all_engines_fail(
        self, stt_service_instance, sample_audio_data
    ):
        with pytest.raises(TranscriptionError):
            await stt_service_instance.transcribe_audio(sample_audio_data, "en")

        assert stt_service_instance.performance_stats["failed_transcriptions"] == 1

    @pytest.mark.asyncio
    async def test_audio_too_short(self, stt_service_instance):
        with pytest.raises(ValueError, match="too short"):
            await stt_service_instance.transcribe_audio(b"\x00" * 999)

    @pytest.mark.asyncio
    async def test_audio_too_large(self, stt_service_instance):
        with patch("labsync.services.stt_service.MAX_AUDIO_BYTES", 2000):
            with pytest.raises(ValueError, match="too large"):
                await stt_service_instance.transcribe_audio(b"\x00" * 2001)

    @pytest.mark.asyncio
    async def test_health_check_degraded_without_engines(self):
        health = await STTService().health_check()
        assert health["status"] == "degraded"
        assert health["providers"]["faster_whisper"]["status"] == "not_loaded"
