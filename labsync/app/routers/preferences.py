"""User language, region and Low Resource Mode preferences."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from labsync.app.config.preference_defaults import get_preference_defaults
from labsync.app.models.preferences import UserPreferences
from labsync.app.routers.common import get_current_user, read_json_body
from labsync.services.storage_service import storage_service
from labsync.utils.logging import get_logger

router = APIRouter(prefix="/api/preferences", tags=["preferences"])
logger = get_logger(__name__)


@router.get("")
async def get_preferences(current_user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, Any]:
    user_id = current_user["user_id"]
    try:
        stored = await storage_service.get_preferences(user_id)
    except Exception as e:
        logger.error("Error fetching preferences: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch preferences: {str(e)}",
        ) from e

    if stored:
        preferences = UserPreferences.model_validate(stored)
    else:
        preferences = get_preference_defaults().model_copy(update={"user_id": user_id})
    return {"success": True, "data": preferences.to_wire()}


@router.put("")
async def update_preferences(
    request: Request,
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Validate and store the caller's preferences."""

    user_id = current_user["user_id"]
    body = await read_json_body(request)
    try:
        preferences = UserPreferences.model_validate({**body, "userId": user_id})
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        await storage_service.save_preferences(user_id, preferences.to_wire())
    except Exception as e:
        logger.error("Error saving preferences: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save preferences: {str(e)}",
        ) from e

    logger.info("Updated preferences", extra={"extra_fields": {"user_id": user_id}})
    return {"success": True, "data": preferences.to_wire()}
