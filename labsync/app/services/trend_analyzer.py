"""Trend statistics for one lab parameter across a patient's reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np

from ...services.storage_service import storage_service
from ...utils.errors import TrendAnalysisError
from ...utils.logging import get_logger
from ..models.trends import TrendDataPoint, TrendResponse, TrendStatistics

logger = get_logger(__name__)

SLOPE_EPSILON = 1e-4


def parse_date(value: Any) -> Optional[datetime]:
    """ISO timestamp to a naive UTC datetime; None when unparseable."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def percent_change(first: float, last: float) -> float:
    if first == 0:
        return 0.0
    return (last - first) / first * 100


def analyze_trends(points: List[Dict[str, Any]], metric: str) -> Dict[str, Any]:
    """Least-squares trend over ``{date, value}`` points.

    The slope is taken against epoch milliseconds; direction is
    ``increasing`` or ``decreasing`` only beyond a 1e-4 slope.
    """

    if not points or len(points) < 2:
        raise TrendAnalysisError("Insufficient data for trend analysis")

    try:
        values = np.array([float(p["value"]) for p in points], dtype=float)
        stamps = np.array(
            [parse_date(p["date"]).replace(tzinfo=timezone.utc).timestamp() * 1000 for p in points],
            dtype=float,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise TrendAnalysisError(f"Invalid trend data: {exc}") from exc

    x = stamps - stamps.mean()
    y = values - values.mean()
    denominator = float(np.sum(x * x))
    slope = float(np.sum(x * y)) / denominator if denominator else 0.0

    direction = "stable"
    if slope > SLOPE_EPSILON:
        direction = "increasing"
    elif slope < -SLOPE_EPSILON:
        direction = "decreasing"

    insights = []
    name = metric.lower()
    if "glucose" in name:
        if direction == "increasing":
            insights.append("Your glucose levels have been trending upward, which may require attention")
        elif direction == "decreasing" and values.max() > 120:
            insights.append("Your glucose levels are improving, but were previously elevated")
    elif "cholesterol" in name:
        if direction == "decreasing":
            insights.append("Your cholesterol levels are showing improvement")
        elif direction == "increasing":
            insights.append("Your cholesterol levels are trending upward, consider dietary adjustments")

    return {
        "metric": metric,
        "statistics": {
            "min": float(values.min()),
            "max": float(values.max()),
            "average": float(values.mean()),
            "percentChange": "%.2f%%" % percent_change(values[0], values[-1]),
            "direction": direction,
        },
        "insights": insights,
        "dataPoints": len(points),
    }


def trend_statistics(points: List[TrendDataPoint]) -> TrendStatistics:
    """Summary statistics; direction follows the first-to-last change."""

    if not points:
        return TrendStatistics()
    values = [p.value for p in points]
    change = percent_change(values[0], values[-1]) if len(values) > 1 else 0.0
    direction = "increasing" if change > 0 else "decreasing" if change < 0 else "stable"
    return TrendStatistics(
        min=min(values),
        max=max(values),
        average=sum(values) / len(values),
        trend="%.2f%%" % change,
        direction=direction,
    )


def extract_trend_points(reports: List[Dict[str, Any]], test_name: str) -> List[TrendDataPoint]:
    """One point per report holding a parseable result whose name contains ``test_name``."""

    needle = test_name.lower()
    points = []
    for report in reports:
        result = next(
            (
                r for r in report.get("results") or []
                if isinstance(r, dict) and needle in str(r.get("name", "")).lower()
            ),
            None,
        )
        if result is None:
            continue
        try:
            value = float(result.get("value"))
        except (TypeError, ValueError):
            continue
        points.append(
            TrendDataPoint(
                date=report.get("uploadDate"),
                value=value,
                unit=result.get("unit") or "",
                status=result.get("status") or "normal",
                report_id=report.get("id"),
                report_title=report.get("title"),
            )
        )
    return points


class TrendAnalyzer:
    def __init__(self, storage=storage_service):
        self._storage = storage

    async def get_trend(
        self,
        patient_name: str,
        test_name: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> TrendResponse:
        reports = [
            r for r in await self._storage.list_reports()
            if str(r.get("patientName") or "").lower() == patient_name.lower()
        ]

        start, end = parse_date(start_date), parse_date(end_date)
        dated = [(parse_date(r.get("uploadDate")), r) for r in reports]
        dated = [
            (when, r) for when, r in dated
            if when is not None
            and (start is None or when >= start)
            and (end is None or when <= end)
        ]
        dated.sort(key=lambda item: item[0])

        points = extract_trend_points([r for _, r in dated], test_name)
        statistics = trend_statistics(points)

        ai_analysis = None
        if len(points) >= 3:
            try:
                ai_analysis = analyze_trends(
                    [{"date": p.date, "value": p.value} for p in points], test_name
                )
            except TrendAnalysisError as exc:
                logger.warning("Trend analysis failed for %s: %s", test_name, exc)
        if ai_analysis is None:
            ai_analysis = {
                "interpretation": (
                    f"{test_name} values have {statistics.direction} by "
                    f"{statistics.trend} over the observed period."
                ),
                "significance": "No AI significance analysis available",
                "recommendations": [],
            }

        logger.info(
            "Computed trend",
            extra={"extra_fields": {"test_name": test_name, "points": len(points)}},
        )
        return TrendResponse(
            patient_name=patient_name,
            test_name=test_name,
            trend_data=points,
            statistics=statistics,
            ai_analysis=ai_analysis,
        )


trend_analyzer = TrendAnalyzer()
