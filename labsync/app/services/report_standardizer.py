"""Rule-based report classification and lab value extraction."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...utils.logging import get_logger
from ..models.report import ReportType, ResultStatus

logger = get_logger(__name__)

NUMBER = r"(\d+\.?\d*)"

# Checked in order; the first type with a matching keyword wins.
CLASSIFICATION_KEYWORDS: List[Tuple[ReportType, Tuple[str, ...]]] = [
    (
        ReportType.CBC,
        ("cbc", "complete blood count", "hemoglobin", "hematocrit",
         "white blood cell", "platelet"),
    ),
    (ReportType.LIPID_PANEL, ("lipid", "cholesterol", "hdl", "ldl", "triglyceride")),
    (
        ReportType.METABOLIC_PANEL,
        ("metabolic panel", "glucose", "bun", "creatinine", "electrolyte",
         "sodium", "potassium"),
    ),
    (ReportType.URINALYSIS, ("urinalysis", "urine", "specific gravity", "leukocyte")),
    (ReportType.THYROID_PANEL, ("thyroid", "tsh", "t3", "t4", "thyroxine")),
    (
        ReportType.IMAGING,
        ("x-ray", "xray", "mri", "ct scan", "ultrasound", "imaging", "radiograph"),
    ),
    (
        ReportType.PATHOLOGY,
        ("pathology", "biopsy", "histology", "cytology", "specimen"),
    ),
]

FILENAME_KEYWORDS: List[Tuple[ReportType, Tuple[str, ...]]] = [
    (ReportType.CBC, ("cbc", "blood", "hematology")),
    (ReportType.LIPID_PANEL, ("lipid", "cholesterol")),
    (ReportType.IMAGING, ("xray", "x-ray", "radiograph", "mri", "ct", "ultrasound")),
    (ReportType.METABOLIC_PANEL, ("metabolic", "chemistry")),
    (ReportType.URINALYSIS, ("urine", "urinalysis")),
]


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Short abbreviations only count as whole words ("bun" is not "bundle")
    if len(keyword) <= 3:
        return re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])")
    return re.compile(re.escape(keyword))


_CLASSIFIERS = [
    (report_type, [_keyword_pattern(k) for k in keywords])
    for report_type, keywords in CLASSIFICATION_KEYWORDS
]
_FILENAME_CLASSIFIERS = [
    (report_type, [_keyword_pattern(k) for k in keywords])
    for report_type, keywords in FILENAME_KEYWORDS
]


def _first_match(text: str, classifiers) -> ReportType:
    lowered = text.lower()
    for report_type, patterns in classifiers:
        if any(p.search(lowered) for p in patterns):
            return report_type
    return ReportType.OTHER


def classify_report_type(text: Optional[str]) -> ReportType:
    """Classify report text by keyword; empty or unmatched text is OTHER."""

    if not text or not text.strip():
        return ReportType.OTHER
    return _first_match(text, _CLASSIFIERS)


def guess_report_type(filename: Optional[str]) -> ReportType:
    """Guess the report type from keywords in the file name."""

    if not filename:
        return ReportType.OTHER
    return _first_match(filename, _FILENAME_CLASSIFIERS)


# Type-specific patterns: (name, regex with value and optional unit groups)
_COUNT_UNIT = r"(k/\w+|x10\^\d+/\w+|\*10\^\d+/\w+|10\^\d+/\w+|\d+/\w+|\w+/\w+)?"
_DIFF_UNIT = r"(%|k/\w+|x10\^\d+/\w+|\*10\^\d+/\w+|10\^\d+/\w+|\d+/\w+|\w+/\w+|percent)?"

CBC_PATTERNS = [
    ("White Blood Cell Count",
     rf"\b(?:wbc|white\s*blood\s*cell|leukocyte|white\s*cell)\s*(?:count)?\s*:?\s*{NUMBER}\s*{_COUNT_UNIT}"),
    ("Red Blood Cell Count",
     rf"\b(?:rbc|red\s*blood\s*cell|erythrocyte|red\s*cell)\s*(?:count)?\s*:?\s*{NUMBER}\s*{_COUNT_UNIT.replace('k/', 'm/')}"),
    ("Hemoglobin", rf"(?<!corpuscular )(?<!cell )\b(?:hgb|hemoglobin|hb)\.?\s*:?\s*{NUMBER}\s*(g/\w+|g\s*\w+/\w+)?"),
    ("Hematocrit", rf"\b(?:hct|hematocrit|pvf)\.?\s*:?\s*{NUMBER}\s*(%|percent)?"),
    ("Platelet Count",
     rf"\b(?:plt|platelet|thrombocyte)s?\s*(?:count)?\s*:?\s*{NUMBER}\s*{_COUNT_UNIT}"),
    ("Mean Corpuscular Hemoglobin Concentration",
     rf"\b(?:mchc|mean\s*c(?:orpuscular|ell)\s*hemoglobin\s*concentration)\s*:?\s*{NUMBER}\s*(g/\w+|g\s*\w+/\w+|%|percent)?"),
    ("Mean Corpuscular Volume",
     rf"\b(?:mcv|mean\s*c(?:orpuscular|ell)\s*volume)\s*:?\s*{NUMBER}\s*(fl|femtoliters?)?"),
    ("Mean Corpuscular Hemoglobin",
     rf"\b(?:mch|mean\s*c(?:orpuscular|ell)\s*hemoglobin)(?!\s*c)\s*:?\s*{NUMBER}\s*(pg|picograms?)?"),
    ("Neutrophils",
     rf"\b(?:neutrophils?|neut|neutro|polys?|pmns?)\s*(?:count)?\s*:?\s*{NUMBER}\s*{_DIFF_UNIT}"),
    ("Lymphocytes", rf"\b(?:lymphocytes?|lymph)\s*(?:count)?\s*:?\s*{NUMBER}\s*{_DIFF_UNIT}"),
    ("Monocytes", rf"\b(?:monocytes?|mono)\s*(?:count)?\s*:?\s*{NUMBER}\s*{_DIFF_UNIT}"),
    ("Eosinophils", rf"\b(?:eosinophils?|eos)\s*(?:count)?\s*:?\s*{NUMBER}\s*{_DIFF_UNIT}"),
    ("Basophils", rf"\b(?:basophils?|baso)\s*(?:count)?\s*:?\s*{NUMBER}\s*{_DIFF_UNIT}"),
]

_LIPID_UNIT = r"(mg/\w+|mmol/\w+)?"
LIPID_PATTERNS = [
    ("Non-HDL Cholesterol", rf"\b(?:non-hdl|non\s*hdl)\s*(?:cholesterol)?\s*:?\s*{NUMBER}\s*{_LIPID_UNIT}"),
    ("Cholesterol/HDL Ratio", rf"\b(?:cholesterol/hdl|chol/hdl|total/hdl)\s*(?:ratio)?\s*:?\s*{NUMBER}()"),
    ("Total Cholesterol", rf"\b(?:total\s*cholesterol|cholesterol,?\s*total)\s*:?\s*{NUMBER}\s*{_LIPID_UNIT}"),
    ("HDL Cholesterol",
     rf"(?<!non-)(?<!non )\b(?:hdl-c|hdl|high\s*density\s*lipoprotein)\s*(?:cholesterol)?\s*:?\s*{NUMBER}\s*{_LIPID_UNIT}"),
    ("LDL Cholesterol", rf"\b(?:ldl-c|ldl|low\s*density\s*lipoprotein)\s*(?:cholesterol)?\s*:?\s*{NUMBER}\s*{_LIPID_UNIT}"),
    ("Triglycerides", rf"\b(?:triglycerides|tg)\s*:?\s*{NUMBER}\s*{_LIPID_UNIT}"),
]

_ELECTROLYTE_UNIT = r"(mmol/\w+|meq/\w+)?"
METABOLIC_PATTERNS = [
    ("Glucose", rf"\b(?:glucose|gluc)\s*:?\s*{NUMBER}\s*(mg/\w+|mmol/\w+)?"),
    ("Blood Urea Nitrogen", rf"\b(?:bun|blood\s*urea\s*nitrogen)\s*:?\s*{NUMBER}\s*(mg/\w+|mmol/\w+)?"),
    ("Creatinine", rf"\b(?:creatinine|creat)\s*:?\s*{NUMBER}\s*(mg/\w+|μmol/\w+)?"),
    ("eGFR", rf"\b(?:egfr|estimated\s*(?:glomerular|gfr))\s*:?\s*{NUMBER}\s*(ml/min/\w+)?"),
    ("Sodium", rf"\b(?:sodium|na)\s*:?\s*{NUMBER}\s*{_ELECTROLYTE_UNIT}"),
    ("Potassium", rf"\b(?:potassium|k)\s*:?\s*{NUMBER}\s*{_ELECTROLYTE_UNIT}"),
    ("Chloride", rf"\b(?:chloride|cl)\s*:?\s*{NUMBER}\s*{_ELECTROLYTE_UNIT}"),
    ("Carbon Dioxide", rf"\b(?:carbon\s*dioxide|co2|bicarbonate)\s*:?\s*{NUMBER}\s*{_ELECTROLYTE_UNIT}"),
    ("Calcium", rf"\b(?:calcium|ca)\s*:?\s*{NUMBER}\s*(mg/\w+|mmol/\w+)?"),
    ("Protein, Total", rf"\b(?:total\s*protein|protein,?\s*total)\s*:?\s*{NUMBER}\s*(g/\w+)?"),
    ("Albumin/Globulin Ratio", rf"\b(?:albumin/globulin|a/g)\s*(?:ratio)?\s*:?\s*{NUMBER}()"),
    ("Albumin", rf"\b(?:albumin|alb)\s*:?\s*{NUMBER}\s*(g/\w+)?"),
    ("Globulin", rf"\b(?:globulin|glob)\s*:?\s*{NUMBER}\s*(g/\w+)?"),
    ("Bilirubin, Total", rf"\b(?:total\s*bilirubin|bilirubin,?\s*total)\s*:?\s*{NUMBER}\s*(mg/\w+|μmol/\w+)?"),
    ("Alkaline Phosphatase", rf"\b(?:alkaline\s*phosphatase|alk\s*phos|alp)\s*:?\s*{NUMBER}\s*(u/\w+|iu/\w+)?"),
    ("AST", rf"\b(?:ast|aspartate\s*(?:aminotransferase|transaminase)|sgot)\s*:?\s*{NUMBER}\s*(u/\w+|iu/\w+)?"),
    ("ALT", rf"\b(?:alt|alanine\s*(?:aminotransferase|transaminase)|sgpt)\s*:?\s*{NUMBER}\s*(u/\w+|iu/\w+)?"),
]

CBC_RANGE_PATTERNS = [
    re.compile(rf"\({NUMBER}\s*-\s*{NUMBER}\)", re.I),
    re.compile(rf"reference\s*:?\s*{NUMBER}\s*-\s*{NUMBER}", re.I),
    re.compile(rf"normal\s*:?\s*{NUMBER}\s*-\s*{NUMBER}", re.I),
    re.compile(rf"range\s*:?\s*{NUMBER}\s*-\s*{NUMBER}", re.I),
    re.compile(rf"ref\.?\s*range\s*:?\s*{NUMBER}\s*-\s*{NUMBER}", re.I),
]
PANEL_RANGE_PATTERNS = [
    re.compile(rf"\({NUMBER}\s*-\s*{NUMBER}\)", re.I),
    re.compile(rf"reference\s*:?\s*{NUMBER}\s*-\s*{NUMBER}", re.I),
]

TYPE_PATTERNS = {
    ReportType.CBC: (CBC_PATTERNS, CBC_RANGE_PATTERNS, 100),
    ReportType.LIPID_PANEL: (LIPID_PATTERNS, PANEL_RANGE_PATTERNS, 50),
    ReportType.METABOLIC_PANEL: (METABOLIC_PATTERNS, PANEL_RANGE_PATTERNS, 50),
}

# Name aliases for CBC rows laid out as tables
CBC_TABLE_ALIASES = {
    "White Blood Cell Count": ("wbc", "white blood cell", "leukocyte", "white cell count"),
    "Red Blood Cell Count": ("rbc", "red blood cell", "erythrocyte", "red cell count"),
    "Hemoglobin": ("hgb", "hemoglobin", "hb"),
    "Hematocrit": ("hct", "hematocrit", "pvf"),
    "Mean Corpuscular Volume": ("mcv", "mean corpuscular volume", "mean cell volume"),
    "Mean Corpuscular Hemoglobin": ("mch", "mean cell hemoglobin"),
    "Mean Corpuscular Hemoglobin Concentration": ("mchc", "mean corpuscular hemoglobin concentration"),
    "Platelet Count": ("plt", "platelet", "thrombocyte"),
    "Neutrophils": ("neutrophil", "neut", "poly", "pmn"),
    "Lymphocytes": ("lymphocyte", "lymph"),
    "Monocytes": ("monocyte", "mono"),
    "Eosinophils": ("eosinophil", "eos"),
    "Basophils": ("basophil", "baso"),
}

# Lookbehinds that keep an alias from matching inside a longer name
CBC_TABLE_GUARDS = {"Hemoglobin": r"(?<!corpuscular )(?<!cell )"}

EXPECTED_PARAMETERS = {
    ReportType.CBC: [
        "White Blood Cell Count", "Red Blood Cell Count", "Hemoglobin", "Hematocrit",
        "Mean Corpuscular Volume", "Mean Corpuscular Hemoglobin",
        "Mean Corpuscular Hemoglobin Concentration", "Platelet Count",
        "Neutrophils", "Lymphocytes", "Monocytes", "Eosinophils", "Basophils",
    ],
    ReportType.LIPID_PANEL: [
        "Total Cholesterol", "HDL Cholesterol", "LDL Cholesterol",
        "Triglycerides", "Non-HDL Cholesterol", "Cholesterol/HDL Ratio",
    ],
    ReportType.METABOLIC_PANEL: [
        "Glucose", "Blood Urea Nitrogen", "Creatinine", "eGFR", "Sodium", "Potassium",
        "Chloride", "Carbon Dioxide", "Calcium", "Protein, Total", "Albumin", "Globulin",
        "Albumin/Globulin Ratio", "Bilirubin, Total", "Alkaline Phosphatase", "AST", "ALT",
    ],
}

GENERIC_PATTERN = re.compile(
    r"([A-Za-z][\w \t,\-/()]*?)[ \t]*:?[ \t]*(?<![\w.])" + NUMBER + r"(?![\d.\-/])"
    r"[ \t]*([a-zA-Z/%]+)?[ \t]*"
    r"(?:\((?:reference|ref|normal)?\s*:?\s*" + NUMBER + r"\s*-\s*" + NUMBER
    + r"\s*([a-zA-Z/%]+)?\))?"
)
TABLE_ROW_PATTERN = re.compile(
    r"^([A-Za-z][\w ,\-/()]*?)\s{2,}" + NUMBER + r"\s*([a-zA-Z/%]+)?"
    r"(?:\s{2,}" + NUMBER + r"\s*-\s*" + NUMBER + r")?"
)


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def determine_status(value: Any, low: Any, high: Any) -> str:
    """low below min, high above max, normal otherwise or without a range."""

    number, low, high = _to_float(value), _to_float(low), _to_float(high)
    if number is None or low is None or high is None:
        return ResultStatus.NORMAL.value
    if number < low:
        return ResultStatus.LOW.value
    if number > high:
        return ResultStatus.HIGH.value
    return ResultStatus.NORMAL.value


def build_result(
    name: str,
    value: Any,
    unit: Optional[str] = "",
    low: Any = None,
    high: Any = None,
) -> Dict[str, Any]:
    """Assemble a result record with its derived status."""

    number = _to_float(value)
    low_f, high_f = _to_float(low), _to_float(high)
    result = {
        "name": name.strip(),
        "value": number if number is not None else value,
        "unit": unit or "",
        "status": determine_status(number, low_f, high_f),
        "referenceRange": {
            "min": low_f if low_f is not None else "",
            "max": high_f if high_f is not None else "",
        },
    }
    if low_f is not None and high_f is not None:
        result["min"] = low_f
        result["max"] = high_f
    return result


def _valid_name(name: str) -> bool:
    return len(name) >= 2 and not name.isdigit()


class ResultCollector:
    """Ordered results deduplicated by case-insensitive name."""

    def __init__(self):
        self.results: List[Dict[str, Any]] = []
        self._seen = set()

    def add(self, result: Dict[str, Any]) -> bool:
        key = result["name"].lower()
        if key in self._seen:
            return False
        self._seen.add(key)
        self.results.append(result)
        return True

    def names(self) -> set:
        return set(self._seen)


def _find_range(context: str, range_patterns: Iterable[re.Pattern]) -> Tuple[Optional[str], Optional[str]]:
    for pattern in range_patterns:
        match = pattern.search(context)
        if match:
            return match.group(1), match.group(2)
    return None, None


def extract_typed_parameters(text: str, report_type: ReportType, collector: ResultCollector) -> None:
    """Apply the CBC, lipid or metabolic patterns to the report text."""

    if report_type not in TYPE_PATTERNS:
        return
    patterns, range_patterns, window = TYPE_PATTERNS[report_type]
    for name, regex in patterns:
        match = re.search(regex, text, re.I)
        if not match:
            continue
        start = max(0, match.start() - window)
        context = text[start : match.end() + window]
        low, high = _find_range(context, range_patterns)
        collector.add(build_result(name, match.group(1), match.group(2), low, high))

    if report_type == ReportType.CBC:
        _extract_cbc_table(text, collector)


def _extract_cbc_table(text: str, collector: ResultCollector) -> None:
    lines = text.splitlines()
    alias_patterns = {
        name: [
            re.compile(rf"(?<![a-z]){CBC_TABLE_GUARDS.get(name, '')}{re.escape(a)}s?(?![a-z])")
            for a in aliases
        ]
        for name, aliases in CBC_TABLE_ALIASES.items()
    }
    for index, raw in enumerate(lines):
        line = raw.strip().lower()
        if not line:
            continue
        following = lines[index + 1].lower() if index + 1 < len(lines) else ""
        for name, patterns in alias_patterns.items():
            if name.lower() in collector.names() or not any(p.search(line) for p in patterns):
                continue
            value = re.search(r"(?<![\w.])" + NUMBER, line) or re.search(NUMBER, following)
            if not value:
                continue
            unit = re.search(
                re.escape(value.group(1)) + r"\s*([a-z/%^0-9]*[a-z%][a-z/%^0-9]*)", line
            )
            rng = re.search(rf"{NUMBER}\s*-\s*{NUMBER}", line) or re.search(
                rf"{NUMBER}\s*-\s*{NUMBER}", following
            )
            collector.add(
                build_result(
                    name,
                    value.group(1),
                    unit.group(1) if unit else "",
                    rng.group(1) if rng else None,
                    rng.group(2) if rng else None,
                )
            )


def extract_generic_parameters(text: str, collector: ResultCollector) -> None:
    """``Name: value unit (ref min-max)`` lines of any report."""

    for match in GENERIC_PATTERN.finditer(text):
        name = match.group(1).strip()
        if not _valid_name(name):
            continue
        collector.add(
            build_result(name, match.group(2), match.group(3), match.group(4), match.group(5))
        )


def extract_table_rows(text: str, collector: ResultCollector) -> None:
    """Rows laid out as ``Name    value unit    min - max``."""

    for line in text.splitlines():
        match = TABLE_ROW_PATTERN.match(line.strip())
        if not match:
            continue
        name = match.group(1).strip()
        if not _valid_name(name):
            continue
        collector.add(
            build_result(name, match.group(2), match.group(3), match.group(4), match.group(5))
        )


def add_missing_parameters(report_type: ReportType, collector: ResultCollector) -> None:
    for name in EXPECTED_PARAMETERS.get(report_type, []):
        if name.lower() in collector.names():
            continue
        collector.add(
            {
                "name": name,
                "value": "",
                "unit": "",
                "status": ResultStatus.NOT_AVAILABLE.value,
                "referenceRange": {"min": "", "max": ""},
            }
        )


def standardize_report(report_data: Dict[str, Any], report_type: ReportType) -> Dict[str, Any]:
    """Turn raw report text into a list of structured results.

    Parameters supplied by the caller win outright. Otherwise type-specific
    patterns run first, the generic pattern only when they found nothing,
    then table rows; expected parameters that were never found are added
    as ``not available`` placeholders.
    """

    parameters = report_data.get("parameters")
    if isinstance(parameters, list) and parameters:
        return {"results": parameters, "parameters": parameters}

    text = report_data.get("text") or ""
    collector = ResultCollector()
    try:
        extract_typed_parameters(text, report_type, collector)
        if not collector.results:
            extract_generic_parameters(text, collector)
        extract_table_rows(text, collector)
        add_missing_parameters(report_type, collector)
    except re.error as exc:
        logger.error("Report standardization failed: %s", exc)
        return {"results": [], "parameters": []}

    logger.info(
        "Standardized report",
        extra={
            "extra_fields": {
                "report_type": report_type.value,
                "result_count": len(collector.results),
            }
        },
    )
    return {"results": collector.results, "parameters": collector.results}


def extracted_values(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Results that carry an actual value, dropping placeholders."""

    return [
        r for r in results
        if r.get("status") != ResultStatus.NOT_AVAILABLE.value and r.get("value") not in ("", None)
    ]
