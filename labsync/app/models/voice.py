"""Voice request records."""

from __future__ import annotations

from typing import Optional

from .base import CamelModel


class VoiceOptions(CamelModel):
    language_code: str = "en-US"
    gender: str = "female"
    speed: float = 1.0
    pitch: float = 1.0


class SynthesisRequest(CamelModel):
    text: Optional[str] = None
    voice_options: Optional[VoiceOptions] = None


class TranscriptionResponse(CamelModel):
    text: str
    confidence: float
    model: Optional[str] = None
    provider: Optional[str] = None
