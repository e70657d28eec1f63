"""Voice endpoint: speech to text for uploads, text to speech for JSON."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from labsync.app.models.voice import SynthesisRequest, TranscriptionResponse, VoiceOptions
from labsync.app.routers.common import get_current_user, is_multipart, read_form, read_json_body
from labsync.services.stt_service import stt_service
from labsync.services.tts_service import tts_service
from labsync.utils.errors import SpeechSynthesisError, TranscriptionError
from labsync.utils.logging import get_logger

router = APIRouter(prefix="/api/voice", tags=["voice"])
logger = get_logger(__name__)

SUCCESS_MESSAGE = "Voice response generated successfully"


async def _transcribe(request: Request, user_id: str) -> Dict[str, Any]:
    fields, audio = await read_form(request, "audio")
    if audio is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Audio file is required")

    audio_data = await audio.read()
    try:
        result = await stt_service.transcribe_audio(
            audio_data, language=fields.get("language") or "en", user_id=user_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TranscriptionError as exc:
        logger.error("Transcription failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Transcription failed: {str(exc)}",
        ) from exc

    logger.info(
        "Transcribed voice upload",
        extra={"extra_fields": {"bytes": len(audio_data), "provider": result.get("provider")}},
    )
    return TranscriptionResponse.model_validate(result).to_wire()


async def _synthesize(request: Request) -> Dict[str, Any]:
    try:
        payload = SynthesisRequest.model_validate(await read_json_body(request))
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not payload.text or not payload.text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Text is required")

    options = payload.voice_options or VoiceOptions()
    try:
        return await tts_service.synthesize(
            payload.text,
            language_code=options.language_code,
            gender=options.gender,
            speed=options.speed,
            pitch=options.pitch,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SpeechSynthesisError as exc:
        logger.error("Speech synthesis failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Speech synthesis failed: {str(exc)}",
        ) from exc


@router.post("")
async def voice(
    request: Request,
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Multipart ``audio`` is transcribed; a JSON ``text`` body is spoken."""

    if is_multipart(request):
        data = await _transcribe(request, current_user["user_id"])
    else:
        data = await _synthesize(request)
    return {"success": True, "data": data, "message": SUCCESS_MESSAGE}
