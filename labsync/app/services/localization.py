"""Regional reference ranges, translation and SMS-sized text."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...services.translation_service import translation_service
from ...utils.config import ModelConfig, settings
from ...utils.logging import get_logger
from ..config.reference_ranges import ALL_INDIA, get_reference_range
from ..models.preferences import UserPreferences
from ..models.report import ResultStatus
from .low_resource import estimate_report_size, optimize_for_low_resource

logger = get_logger(__name__)

VOWELS = set("aeiouAEIOU")


def calculate_status(value: Any, low: Optional[float], high: Optional[float]) -> str:
    """Status against a range; 20% beyond either bound is critical."""

    try:
        number = float(value)
    except (TypeError, ValueError):
        return ResultStatus.NORMAL.value
    if low is None or high is None:
        return ResultStatus.NORMAL.value
    if number < low:
        return ResultStatus.CRITICAL_LOW.value if number < low * 0.8 else ResultStatus.LOW.value
    if number > high:
        return ResultStatus.CRITICAL_HIGH.value if number > high * 1.2 else ResultStatus.HIGH.value
    return ResultStatus.NORMAL.value


def _is_number(value: Any) -> bool:
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


def apply_regional_reference_ranges(
    results: List[Dict[str, Any]], region: str = ALL_INDIA, gender: str = "male"
) -> List[Dict[str, Any]]:
    """Replace reference ranges with regional ones and recompute status.

    Results without a regional range or a numeric value are returned unchanged.
    """

    adjusted = []
    for result in results:
        regional = get_reference_range(result.get("name", ""), region, gender)
        if not regional or not _is_number(result.get("value")):
            adjusted.append(result)
            continue
        low, high = regional["min"], regional["max"]
        adjusted.append(
            {
                **result,
                "referenceRange": {
                    "min": low,
                    "max": high,
                    "text": f"{low:g}-{high:g} {regional['unit']}",
                },
                "status": calculate_status(result.get("value"), low, high),
            }
        )
    return adjusted


def is_supported_language(language: str) -> bool:
    return language in ModelConfig.SUPPORTED_LANGUAGES


async def translate_text(text: str, language: str) -> str:
    """Translate English text; English and unknown languages pass through."""

    if not text or language == "en" or not is_supported_language(language):
        return text
    return await translation_service.translate(text, target_lang=language, source_lang="en")


def compress_for_sms(text: str, max_length: Optional[int] = None) -> str:
    """Drop vowels from words longer than 3 letters, then truncate with ``...``."""

    max_length = max_length or settings.sms_max_length
    if len(text) <= max_length:
        return text

    words = [
        "".join(ch for ch in word if ch not in VOWELS) if len(word) > 3 else word
        for word in text.split(" ")
    ]
    compressed = " ".join(words)
    if len(compressed) > max_length:
        compressed = compressed[: max_length - 3] + "..."
    return compressed


async def generate_sms_report_summary(report: Dict[str, Any], language: str = "en") -> str:
    """Short report summary listing abnormal results, translated and compressed."""

    report_date = str(report.get("reportDate") or report.get("uploadDate") or "")[:10]
    abnormal = [
        r for r in report.get("results") or []
        if r.get("status") not in (ResultStatus.NORMAL.value, ResultStatus.NOT_AVAILABLE.value, None)
    ]

    lines = [f"Report: {report.get('title', 'Medical Report')} ({report_date})"]
    if abnormal:
        lines.append("Abnormal Results:")
        lines += [
            f"- {r.get('name')}: {r.get('value')} {r.get('unit') or ''} ({r.get('status') or 'Abnormal'})"
            for r in abnormal
        ]
    else:
        lines.append("All results normal")

    recommendations = (report.get("analysis") or {}).get("recommendations") or []
    if recommendations:
        lines.append(f"Key Recommendation: {recommendations[0]}")

    summary = await translate_text("\n".join(lines) + "\n", language)
    return compress_for_sms(summary)


def personalize_report(report: Dict[str, Any], preferences: UserPreferences) -> Dict[str, Any]:
    """Re-rate results for the user's region, then apply Low Resource Mode."""

    if report.get("results"):
        report = {
            **report,
            "results": apply_regional_reference_ranges(
                report["results"],
                preferences.language.region,
                report.get("patientGender") or "male",
            ),
        }

    compression = preferences.compression
    if not compression.enabled:
        return report

    optimized = optimize_for_low_resource(report, compression)
    logger.debug(
        "Optimized report payload",
        extra={
            "extra_fields": {
                "report_id": report.get("id"),
                "size_kb": estimate_report_size(report),
                "optimized_kb": estimate_report_size(optimized),
            }
        },
    )
    return optimized
