"""REST router for report questions answered by the LLM."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from labsync.app.models.assistant import AskRequest
from labsync.app.routers.common import get_current_user
from labsync.app.services.question_answerer import question_answerer
from labsync.utils.logging import RequestContext, get_logger

router = APIRouter(prefix="/api/ai", tags=["ai"])
logger = get_logger(__name__)


@router.post("")
async def ask_question(
    payload: AskRequest,
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """
    Answer a question about a report.

    Args:
        payload: question, report and answer options

    Returns:
        ``{success, data}`` with answer, references and suggested follow-ups
    """
    if not payload.question or not payload.question.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Question is required")
    if not payload.report:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Report data is required")

    options = payload.options
    try:
        with RequestContext(user_id=current_user["user_id"]):
            response = await question_answerer.answer_question(
                payload.question,
                payload.report,
                history=options.conversation_history,
                patient_context=options.patient_context,
                detailed=options.detailed,
                include_references=options.include_references,
                user_id=current_user["user_id"],
            )
    except Exception as e:
        logger.error("Error answering question: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process your question",
        ) from e

    return {"success": True, "data": response.to_wire()}
