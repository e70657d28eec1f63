"""Per-patient trend of a single test over time."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, status

from labsync.app.services.trend_analyzer import trend_analyzer
from labsync.utils.logging import get_logger

router = APIRouter(prefix="/api/trends", tags=["trends"])
logger = get_logger(__name__)


@router.get("")
async def get_trends(
    patient_name: Optional[str] = Query(None, alias="patientName"),
    test_name: Optional[str] = Query(None, alias="testName"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
) -> Dict[str, Any]:
    """Trend points, statistics and interpretation for one test."""

    if not patient_name or not test_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Patient name and test name are required",
        )

    try:
        trend = await trend_analyzer.get_trend(patient_name, test_name, start_date, end_date)
    except Exception as e:
        logger.error("Error fetching trend data: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch trend data: {str(e)}",
        ) from e

    return {"success": True, "data": trend.to_wire()}
