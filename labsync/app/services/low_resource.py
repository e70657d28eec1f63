"""Payload reduction for bandwidth-constrained clients."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Union

from ..models.preferences import CompressionSettings
from ..models.report import ResultStatus

DROPPED_KEYS = {"description", "notes", "fileUrl", "fileSize"}
CRITICAL = {ResultStatus.CRITICAL_HIGH.value, ResultStatus.CRITICAL_LOW.value}
# punctuation between digits (times, decimals) is left alone
PUNCTUATION = re.compile(r"\s*([,.:;])(?:\s+|(?=[^\d\s])|$)")


def compress_text_data(text: str) -> str:
    """Collapse whitespace and tighten spacing around punctuation."""

    text = re.sub(r"\s+", " ", text)
    text = PUNCTUATION.sub(r"\1 ", text)
    return text.strip()


def _abnormal(report: Dict[str, Any]) -> list:
    return [
        r for r in report.get("results") or []
        if r.get("status") and r.get("status") not in (ResultStatus.NORMAL.value, ResultStatus.NOT_AVAILABLE.value)
    ]


def generate_sms_summary(report: Dict[str, Any], max_length: int = 160) -> str:
    title = report.get("title") or "Medical Report"
    report_date = str(report.get("uploadDate") or report.get("date") or "")[:10]
    abnormal = _abnormal(report)

    summary = f"{title} ({report_date}): "
    if abnormal:
        summary += f"{len(abnormal)} abnormal results. "
        critical = [r["name"] for r in abnormal if r.get("status") in CRITICAL]
        if critical:
            summary += f"URGENT: {', '.join(critical)}. "
    else:
        summary += "All results normal. "

    recommendations = (report.get("analysis") or {}).get("recommendations") or []
    if recommendations:
        summary += f"Rec: {recommendations[0]}"

    if len(summary) > max_length:
        summary = summary[: max_length - 3] + "..."
    return summary


def estimate_report_size(report: Any) -> int:
    """Serialized size in whole KB."""

    return round(len(json.dumps(report, default=str)) / 1024)


def optimize_for_low_resource(
    data: Any, compression: Union[CompressionSettings, Dict[str, Any]]
) -> Any:
    """Compress strings and, with compressReports on, drop bulky keys recursively."""

    if isinstance(compression, dict):
        compression = CompressionSettings.model_validate(compression)
    if not compression.enabled:
        return data

    if isinstance(data, str):
        # single tokens such as ids, dates and file names are kept verbatim
        return compress_text_data(data) if re.search(r"\s", data) else data
    if isinstance(data, list):
        return [optimize_for_low_resource(item, compression) for item in data]
    if isinstance(data, dict):
        return {
            key: optimize_for_low_resource(value, compression)
            for key, value in data.items()
            if not (compression.compress_reports and key in DROPPED_KEYS)
        }
    return data
