"""Trend records for a single lab parameter over time."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .base import CamelModel


class TrendDataPoint(CamelModel):
    date: str
    value: float
    unit: Optional[str] = ""
    status: Optional[str] = None
    report_id: Optional[str] = None
    report_title: Optional[str] = None


class TrendStatistics(CamelModel):
    min: Optional[float] = None
    max: Optional[float] = None
    average: Optional[float] = None
    trend: str = "0.00%"
    direction: str = "stable"


class TrendResponse(CamelModel):
    patient_name: str
    test_name: str
    trend_data: List[TrendDataPoint] = Field(default_factory=list)
    statistics: TrendStatistics = Field(default_factory=TrendStatistics)
    ai_analysis: Optional[dict] = None

    def to_wire(self) -> dict:
        # statistics keep min, max and average as explicit nulls when there are no points
        wire = super().to_wire()
        wire["statistics"] = self.statistics.model_dump(mode="json", by_alias=True)
        return wire
