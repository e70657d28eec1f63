"""REST router for medical report upload and retrieval."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from labsync.app.routers.common import get_current_user
from labsync.app.services.file_processing import FileTooLargeError
from labsync.app.services.report_pipeline import report_pipeline
from labsync.utils.errors import ReportNotFoundError
from labsync.utils.logging import RequestContext, get_logger

router = APIRouter(prefix="/api/reports", tags=["reports"])
logger = get_logger(__name__)


@router.post("")
async def upload_report(
    file: Optional[UploadFile] = File(None),
    patient_name: Optional[str] = Form(None, alias="patientName"),
    patient_dob: Optional[str] = Form(None, alias="patientDob"),
    provider: Optional[str] = Form(None),
    report_date: Optional[str] = Form(None, alias="reportDate"),
    notes: Optional[str] = Form(None),
    report_type: Optional[str] = Form(None, alias="reportType"),
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Upload a report file, analyse it and store the result."""

    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    try:
        with RequestContext(user_id=current_user["user_id"]):
            content = await file.read()
            return await report_pipeline.upload_report(
                content,
                file.filename,
                content_type=file.content_type,
                patient_name=patient_name,
                patient_dob=patient_dob,
                provider=provider,
                report_date=report_date,
                notes=notes,
                report_type=report_type,
                user_id=current_user["user_id"],
            )
    except FileTooLargeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as e:
        logger.error("Failed to upload report: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload report: {str(e)}",
        ) from e


@router.get("")
async def list_reports(
    type: Optional[str] = Query(None),
    report_status: Optional[str] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """List reports with filters and pagination, newest first.

    Results follow the caller's saved region and Low Resource Mode settings.
    """

    try:
        return await report_pipeline.list_reports(
            type=type,
            status=report_status,
            start_date=start_date,
            end_date=end_date,
            search=search,
            page=page,
            limit=limit,
            user_id=current_user["user_id"],
        )
    except Exception as e:
        logger.error("Failed to fetch reports: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch reports: {str(e)}",
        ) from e


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        report = await report_pipeline.get_report(report_id, user_id=current_user["user_id"])
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found") from exc
    except Exception as e:
        logger.error("Failed to fetch report %s: %s", report_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch report: {str(e)}",
        ) from e
    return {"success": True, "data": report}


@router.delete("/{report_id}")
async def delete_report(report_id: str) -> Dict[str, Any]:
    try:
        await report_pipeline.delete_report(report_id)
    except ReportNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found") from exc
    except Exception as e:
        logger.error("Failed to delete report %s: %s", report_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete report: {str(e)}",
        ) from e
    return {"success": True, "message": "Report deleted successfully"}
