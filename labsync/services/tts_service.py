"""
Text-to-Speech service for LabSync AI backed by Microsoft Edge neural voices.
"""

import base64
import time
from typing import Any, Dict, Optional

import edge_tts

from labsync.utils.cache import cached
from labsync.utils.errors import SpeechSynthesisError
from labsync.utils.logging import get_logger, monitor_latency

logger = get_logger(__name__)

VOICES = {
    "en-US": {"female": "en-US-JennyNeural", "male": "en-US-GuyNeural"},
    "en-IN": {"female": "en-IN-NeerjaNeural", "male": "en-IN-PrabhatNeural"},
    "en-GB": {"female": "en-GB-SoniaNeural", "male": "en-GB-RyanNeural"},
}
DEFAULT_LANGUAGE_CODE = "en-US"
DEFAULT_GENDER = "female"


def select_voice(language_code: Optional[str], gender: Optional[str]) -> str:
    """Pick a neural voice for the language and gender, defaulting to Jenny (en-US)."""
    voices = VOICES.get(language_code or DEFAULT_LANGUAGE_CODE, VOICES[DEFAULT_LANGUAGE_CODE])
    return voices.get((gender or DEFAULT_GENDER).lower(), voices[DEFAULT_GENDER])


def speed_to_rate(speed: float) -> str:
    return f"{int(round((speed - 1) * 100)):+d}%"


def pitch_to_hz(pitch: float) -> str:
    return f"{int(round((pitch - 1) * 50)):+d}Hz"


class TTSService:
    """Synthesises speech and returns base64 encoded MP3 audio."""

    @cached("tts_edge", ttl=3600)
    @monitor_latency("tts_edge", "edge-tts")
    async def synthesize(
        self,
        text: str,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        gender: str = DEFAULT_GENDER,
        speed: float = 1.0,
        pitch: float = 1.0,
    ) -> Dict[str, Any]:
        """
        Convert text to speech.

        Args:
            text: Text to speak
            language_code: en-US, en-IN or en-GB
            gender: male or female
            speed: 0.5 to 2.0, 1.0 is normal rate
            pitch: 0.5 to 2.0, 1.0 is normal pitch

        Returns:
            Dict with base64 ``audioContent``, voice and content type

        Raises:
            ValueError: empty text or speed/pitch out of range
            SpeechSynthesisError: the voice service returned no audio
        """
        if not text or not text.strip():
            raise ValueError("Text is required")
        if not 0.5 <= speed <= 2.0:
            raise ValueError("Speed must be between 0.5 and 2.0")
        if not 0.5 <= pitch <= 2.0:
            raise ValueError("Pitch must be between 0.5 and 2.0")

        voice = select_voice(language_code, gender)
        communicate = edge_tts.Communicate(
            text, voice, rate=speed_to_rate(speed), pitch=pitch_to_hz(pitch)
        )

        audio = bytearray()
        try:
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])
        except Exception as e:
            logger.error(f"Speech synthesis failed: {e}")
            raise SpeechSynthesisError(f"Speech synthesis failed: {e}") from e

        if not audio:
            raise SpeechSynthesisError("No audio received from voice service")

        return {
            "audioContent": base64.b64encode(bytes(audio)).decode("ascii"),
            "contentType": "audio/mpeg",
            "voice": voice,
        }

    async def health_check(self) -> Dict[str, Any]:
        return {
            "service": "tts",
            "status": "healthy",
            "providers": {"edge_tts": {"status": "configured"}},
            "timestamp": time.time(),
        }


tts_service = TTSService()
