"""Regional reference ranges for Indian populations and sample lab results."""

from __future__ import annotations

from typing import Dict, List, Optional

ALL_INDIA = "All India"

# region -> parameter -> gender ("male", "female" or "all") -> range
REGIONAL_REFERENCE_RANGES: Dict[str, Dict[str, Dict[str, Dict]]] = {
    "North India": {
        "Hemoglobin": {
            "male": {"min": 13.0, "max": 17.0, "unit": "g/dL"},
            "female": {"min": 12.0, "max": 15.5, "unit": "g/dL"},
        },
        "Vitamin D": {"all": {"min": 20.0, "max": 40.0, "unit": "ng/mL"}},
    },
    "South India": {
        "Hemoglobin": {
            "male": {"min": 12.5, "max": 16.5, "unit": "g/dL"},
            "female": {"min": 11.5, "max": 15.0, "unit": "g/dL"},
        },
        "Vitamin D": {"all": {"min": 25.0, "max": 45.0, "unit": "ng/mL"}},
    },
    "East India": {
        "Hemoglobin": {
            "male": {"min": 12.5, "max": 16.5, "unit": "g/dL"},
            "female": {"min": 11.5, "max": 15.0, "unit": "g/dL"},
        },
        "Vitamin D": {"all": {"min": 20.0, "max": 40.0, "unit": "ng/mL"}},
    },
    "West India": {
        "Hemoglobin": {
            "male": {"min": 13.0, "max": 17.0, "unit": "g/dL"},
            "female": {"min": 12.0, "max": 15.5, "unit": "g/dL"},
        },
        "Vitamin D": {"all": {"min": 22.0, "max": 42.0, "unit": "ng/mL"}},
    },
    "Northeast India": {
        "Hemoglobin": {
            "male": {"min": 12.0, "max": 16.0, "unit": "g/dL"},
            "female": {"min": 11.0, "max": 14.5, "unit": "g/dL"},
        },
        "Vitamin D": {"all": {"min": 18.0, "max": 38.0, "unit": "ng/mL"}},
    },
    ALL_INDIA: {
        "Fasting Blood Sugar": {"all": {"min": 70.0, "max": 100.0, "unit": "mg/dL"}},
        "Total Cholesterol": {"all": {"min": 125.0, "max": 200.0, "unit": "mg/dL"}},
        "LDL Cholesterol": {"all": {"min": 0.0, "max": 100.0, "unit": "mg/dL"}},
        "HDL Cholesterol": {
            "male": {"min": 40.0, "max": 60.0, "unit": "mg/dL"},
            "female": {"min": 50.0, "max": 70.0, "unit": "mg/dL"},
        },
        "Triglycerides": {"all": {"min": 0.0, "max": 150.0, "unit": "mg/dL"}},
        "TSH": {"all": {"min": 0.4, "max": 4.0, "unit": "mIU/L"}},
        "Creatinine": {
            "male": {"min": 0.7, "max": 1.3, "unit": "mg/dL"},
            "female": {"min": 0.5, "max": 1.1, "unit": "mg/dL"},
        },
        "Uric Acid": {
            "male": {"min": 3.5, "max": 7.2, "unit": "mg/dL"},
            "female": {"min": 2.5, "max": 6.0, "unit": "mg/dL"},
        },
        "Calcium": {"all": {"min": 8.5, "max": 10.5, "unit": "mg/dL"}},
        "Sodium": {"all": {"min": 135.0, "max": 145.0, "unit": "mmol/L"}},
        "Potassium": {"all": {"min": 3.5, "max": 5.0, "unit": "mmol/L"}},
    },
}


def get_reference_range(
    parameter: str, region: str = ALL_INDIA, gender: str = "all"
) -> Optional[Dict]:
    """Range for a parameter, preferring the region, then All India.

    Within a region the gender-specific entry wins over ``all``.
    """

    gender = (gender or "all").lower()
    for area in (region, ALL_INDIA):
        entry = REGIONAL_REFERENCE_RANGES.get(area, {}).get(parameter)
        if not entry:
            continue
        found = entry.get(gender) or entry.get("all")
        if found:
            return found
    return None


def _sample(name: str, value: float, unit: str, low: float, high: float) -> Dict:
    return {
        "name": name,
        "value": value,
        "unit": unit,
        "referenceRange": f"{low:g}-{high:g}",
        "min": low,
        "max": high,
        "status": "normal",
    }


# Used when an uploaded CBC or lipid report yields no parseable values
SAMPLE_RESULTS: Dict[str, List[Dict]] = {
    "CBC": [
        _sample("WBC", 7.5, "x10^9/L", 4.0, 11.0),
        _sample("RBC", 5.0, "x10^12/L", 4.5, 5.5),
        _sample("Hemoglobin", 14.2, "g/dL", 13.5, 17.5),
        _sample("Hematocrit", 42, "%", 41, 50),
        _sample("Platelets", 250, "x10^9/L", 150, 400),
    ],
    "LIPID_PANEL": [
        _sample("Total Cholesterol", 190, "mg/dL", 0, 200),
        _sample("HDL Cholesterol", 45, "mg/dL", 40, 60),
        _sample("LDL Cholesterol", 120, "mg/dL", 0, 130),
        _sample("Triglycerides", 150, "mg/dL", 0, 150),
    ],
}
