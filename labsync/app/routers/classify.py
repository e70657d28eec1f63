"""Report classification and standardization endpoints."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from fastapi import APIRouter, HTTPException, Request, status

from labsync.app.models.report import StandardizeRequest
from labsync.app.routers.common import is_multipart, read_form, read_json_body
from labsync.app.services.file_processing import FileTooLargeError, extract_text
from labsync.app.services.report_pipeline import resolve_report_type
from labsync.app.services.report_standardizer import standardize_report
from labsync.utils.logging import get_logger

router = APIRouter(prefix="/api", tags=["classify"])
logger = get_logger(__name__)

CLASSIFICATION_CONFIDENCE = 0.85


async def _read_content(request: Request) -> Tuple[str, StandardizeRequest]:
    """Report text plus the remaining request fields, from a file or JSON."""

    if is_multipart(request):
        fields, upload = await read_form(request, "file")
        if upload is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is required")
        payload = StandardizeRequest.model_validate({**fields, "fileName": upload.filename})
        try:
            text = extract_text(await upload.read(), upload.filename, upload.content_type)
        except FileTooLargeError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return text, payload

    payload = StandardizeRequest.model_validate(await read_json_body(request))
    if not payload.content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content is required")
    return payload.content, payload


@router.post("/classify")
async def classify_report(request: Request) -> Dict[str, Any]:
    """Detect the report type from its text."""

    text, payload = await _read_content(request)
    try:
        report_type = resolve_report_type(None, text, payload.file_name)
    except Exception as e:
        logger.error("Failed to classify report: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to classify report: {str(e)}",
        ) from e

    return {
        "success": True,
        "data": {
            "reportType": report_type.value,
            "confidence": CLASSIFICATION_CONFIDENCE,
            "possibleAlternatives": [],
        },
    }


@router.post("/standardize")
async def standardize(request: Request) -> Dict[str, Any]:
    """Extract structured results, classifying first when no type is given."""

    text, payload = await _read_content(request)
    try:
        report_type = resolve_report_type(payload.report_type, text, payload.file_name)
        standardized = standardize_report({"text": text}, report_type)
    except Exception as e:
        logger.error("Failed to standardize report: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to standardize report: {str(e)}",
        ) from e

    return {
        "success": True,
        "data": {
            "standardizedData": standardized,
            "reportType": report_type.value,
            "originalFileName": payload.file_name,
        },
    }
