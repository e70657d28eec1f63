"""SMS test notification endpoint."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from labsync.app.models.sms import SMSTestRequest
from labsync.app.services.sms_notifier import sms_notifier
from labsync.services.storage_service import storage_service
from labsync.utils.logging import get_logger

router = APIRouter(prefix="/api/sms-test", tags=["sms"])
logger = get_logger(__name__)


@router.post("")
async def send_test_sms(payload: SMSTestRequest) -> Dict[str, Any]:
    """Send a test notification, built from the stored report when ``reportId`` resolves."""

    if not (payload.phone_number and payload.language and payload.message_type):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    try:
        report = await storage_service.get_report(payload.report_id) if payload.report_id else None
        result = await sms_notifier.send_test(payload, report=report)
    except Exception as e:
        logger.error("Error sending test SMS: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send SMS notification: {str(e)}",
        ) from e

    if result["status"] == "error":
        logger.error("Test SMS delivery failed: %s", result["message"])
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result)
    return result
