"""Audio helpers for speech-to-text."""

from labsync.utils.audio.audio_processor import AudioProcessor, audio_processor

__all__ = ["AudioProcessor", "audio_processor"]
