"""
Audio normalisation for speech-to-text (FFmpeg + NumPy, in-memory).
Uses the ffmpeg binary bundled with imageio-ffmpeg.
"""

import io
import os
import wave
import subprocess
from typing import Optional, Tuple

import numpy as np
from imageio_ffmpeg import get_ffmpeg_exe

from labsync.utils.config import settings
from labsync.utils.logging import get_logger

logger = get_logger(__name__)


class AudioProcessor:
    """
    Converts recorded browser audio (webm/ogg/mp3/wav) into 16 kHz mono
    PCM16 WAV suitable for Whisper.
    """

    def __init__(self):
        self.target_sample_rate: int = settings.audio_sample_rate
        self.target_channels: int = settings.audio_channels
        self._ffmpeg_path: Optional[str] = None

    @property
    def ffmpeg_path(self) -> str:
        if self._ffmpeg_path is None:
            path = get_ffmpeg_exe()
            if not path or not os.path.exists(path):
                raise RuntimeError("FFmpeg not available via imageio-ffmpeg.")
            self._ffmpeg_path = path
        return self._ffmpeg_path

    def _ffmpeg_convert_to_wav_pcm16(self, audio_bytes: bytes) -> bytes:
        """Decode any container FFmpeg can probe into WAV PCM s16le."""
        if not audio_bytes:
            raise ValueError("Empty audio data provided to FFmpeg")

        cmd = [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-nostdin",
            "-y",
            "-i",
            "pipe:0",
            "-ac",
            str(self.target_channels),
            "-ar",
            str(self.target_sample_rate),
            "-acodec",
            "pcm_s16le",
            "-f",
            "wav",
            "pipe:1",
        ]
        try:
            proc = subprocess.run(
                cmd,
                input=audio_bytes,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
            return proc.stdout
        except subprocess.CalledProcessError as e:
            stderr_output = (
                e.stderr.decode(errors="ignore") if e.stderr else "No stderr output"
            )
            logger.error(
                f"FFmpeg conversion failed with exit code {e.returncode}",
                extra={
                    "extra_fields": {
                        "stderr": stderr_output,
                        "size_bytes": len(audio_bytes),
                    }
                },
            )
            raise ValueError(f"FFmpeg failed (exit {e.returncode}): {stderr_output}")

    @staticmethod
    def _read_wav_to_np(wav_bytes: bytes) -> Tuple[np.ndarray, int, int]:
        """Read WAV bytes into (int16 array [samples, channels], sample_rate, channels)."""
        with wave.open(io.BytesIO(wav_bytes), "rb") as w:
            sr = w.getframerate()
            ch = w.getnchannels()
            sw = w.getsampwidth()
            if sw != 2:
                raise ValueError(f"Expected 16-bit WAV, got sample width {sw*8} bits.")
            frames = w.readframes(w.getnframes())
        arr = np.frombuffer(frames, dtype=np.int16)
        return arr.reshape(-1, ch if ch > 1 else 1), sr, ch

    @staticmethod
    def _write_np_to_wav(arr: np.ndarray, sample_rate: int, channels: int) -> bytes:
        if arr.dtype != np.int16:
            raise ValueError("Array must be int16.")
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        bio = io.BytesIO()
        with wave.open(bio, "wb") as w:
            w.setnchannels(channels)
            w.setsampwidth(2)
            w.setframerate(sample_rate)
            w.writeframes(arr.tobytes())
        return bio.getvalue()

    @staticmethod
    def _normalize_rms(
        arr: np.ndarray, target_rms: float = 0.1, max_gain: float = 10.0
    ) -> np.ndarray:
        """Scale an int16 signal toward the target RMS (about -20 dBFS), clipped."""
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        f = arr.astype(np.float32) / 32768.0
        rms = np.sqrt(np.mean(f**2)) + 1e-12
        gain = min(target_rms / rms, max_gain)
        f = np.clip(f * gain, -1.0, 1.0)
        return (f * 32767.0).astype(np.int16)

    async def process_audio_for_stt(self, audio_data: bytes) -> bytes:
        """Convert input audio to mono 16k WAV PCM16, pad the tail and normalise."""
        try:
            wav = self._ffmpeg_convert_to_wav_pcm16(audio_data)
            samples, sr, ch = self._read_wav_to_np(wav)

            # ~10 ms of tail padding so the decoder does not clip the last word
            pad = np.zeros((max(1, int(0.01 * sr)), ch), dtype=np.int16)
            samples = np.vstack([samples, pad])

            samples = self._normalize_rms(samples)
            return self._write_np_to_wav(samples, sr, ch)
        except Exception as e:
            logger.error(f"Failed to process audio: {e}")
            raise


audio_processor = AudioProcessor()
