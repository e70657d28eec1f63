"""Rule-based health recommendations with an LLM-written summary."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ...services.llm_service import llm_service
from ...utils.logging import get_logger
from ..models.health_plan import HealthRecommendations
from ..models.report import ReportType, ResultStatus

logger = get_logger(__name__)

DEFAULT_SUMMARY = (
    "Based on your test results, focus on maintaining a healthy lifestyle with "
    "regular exercise and a balanced diet. Consult with your healthcare provider "
    "for personalized guidance."
)

FALLBACK_RECOMMENDATIONS: Dict[str, Any] = {
    "summary": (
        "We recommend maintaining a healthy lifestyle and consulting with your "
        "healthcare provider for personalized guidance."
    ),
    "dietaryRecommendations": [
        "Maintain a balanced diet with plenty of fruits, vegetables, and whole grains",
        "Stay hydrated by drinking adequate water throughout the day",
        "Limit processed foods, added sugars, and excessive salt intake",
    ],
    "exerciseRecommendations": [
        "Aim for at least 150 minutes of moderate-intensity aerobic activity per week",
        "Include strength training exercises at least twice per week",
        "Find physical activities you enjoy to help maintain consistency",
    ],
    "lifestyleChanges": [
        "Ensure 7-8 hours of quality sleep each night",
        "Practice stress management techniques such as meditation or deep breathing",
        "Avoid tobacco products and limit alcohol consumption",
    ],
    "medicationNotes": [
        "Continue taking all prescribed medications as directed by your healthcare provider",
        "Do not start or stop any medications without consulting your healthcare provider",
        "Keep an updated list of all medications and supplements you take",
    ],
    "followUpSchedule": (
        "Schedule a follow-up appointment with your primary care physician to "
        "discuss these results."
    ),
    "goals": {
        "shortTerm": [
            {"description": "Schedule a follow-up appointment with your doctor", "timeframe": "short-term"},
            {"description": "Establish consistent healthy eating and exercise habits", "timeframe": "short-term"},
        ],
        "longTerm": [
            {"description": "Maintain optimal health metrics through lifestyle changes", "timeframe": "long-term"},
        ],
    },
}

FOLLOW_UP_CLOSING = (
    "Book an appointment with your primary care physician to review results "
    "and adjust your health plan as needed."
)


def fallback_recommendations() -> Dict[str, Any]:
    return json.loads(json.dumps(FALLBACK_RECOMMENDATIONS))


def calculate_age(dob: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """Whole years since ``dob`` (ISO date); None when it cannot be parsed."""

    if not dob:
        return None
    try:
        born = datetime.fromisoformat(str(dob)[:10]).date()
    except ValueError:
        logger.warning("Unparseable date of birth: %s", dob)
        return None
    today = today or date.today()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def abnormal_results(results: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Results flagged high or low that carry a usable name."""

    flagged = []
    for result in results or []:
        if not isinstance(result, dict) or not isinstance(result.get("name"), str):
            continue
        if result.get("status") in (ResultStatus.HIGH.value, ResultStatus.LOW.value):
            flagged.append(result)
    return flagged


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _text(value: Any) -> str:
    return value.lower() if isinstance(value, str) else ""


def _lifestyle(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    lifestyle = (context or {}).get("lifestyle")
    return lifestyle if isinstance(lifestyle, dict) else {}


def _preference(context: Optional[Dict[str, Any]], key: str, lifestyle_key: str) -> str:
    preferences = (context or {}).get("preferences")
    if isinstance(preferences, dict) and preferences.get(key):
        return _text(preferences[key])
    return _text(_lifestyle(context).get(lifestyle_key))


def _age(context: Optional[Dict[str, Any]]) -> Optional[int]:
    age = (context or {}).get("age")
    try:
        return int(age) if age is not None else None
    except (TypeError, ValueError):
        return None


def _has_high(abnormal: List[Dict[str, Any]], *markers: str) -> bool:
    return any(
        r["status"] == ResultStatus.HIGH.value and any(m in r["name"].lower() for m in markers)
        for r in abnormal
    )


def dietary_recommendations(
    report_type: ReportType,
    abnormal: List[Dict[str, Any]],
    context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    recommendations = [
        "Maintain a balanced diet with plenty of fruits, vegetables, and whole grains",
        "Stay hydrated by drinking adequate water throughout the day",
    ]

    if report_type == ReportType.LIPID_PANEL:
        recommendations += [
            "Increase intake of omega-3 fatty acids from sources like fatty fish, flaxseeds, and walnuts",
            "Reduce consumption of saturated and trans fats found in fried foods and processed meats",
            "Include soluble fiber from oats, beans, and fruits to help lower cholesterol",
        ]
    elif report_type == ReportType.METABOLIC_PANEL:
        recommendations += [
            "Limit added sugars and refined carbohydrates to help maintain healthy blood glucose levels",
            "Choose complex carbohydrates with lower glycemic index like whole grains and legumes",
            "Maintain consistent meal timing to help regulate blood sugar",
        ]
    elif report_type == ReportType.CBC:
        recommendations += [
            "Include iron-rich foods like lean meats, beans, and leafy greens if hemoglobin is low",
            "Consume vitamin C alongside iron-rich plant foods to enhance absorption",
        ]

    for result in abnormal:
        name, status = result["name"].lower(), result["status"]
        if any(m in name for m in ("cholesterol", "ldl", "triglyceride")):
            if status == ResultStatus.HIGH.value:
                recommendations += [
                    "Limit dietary cholesterol by reducing consumption of egg yolks and organ meats",
                    "Increase consumption of plant sterols found in vegetable oils, nuts, and seeds",
                ]
        elif "glucose" in name or "a1c" in name:
            if status == ResultStatus.HIGH.value:
                recommendations += [
                    "Monitor carbohydrate intake and focus on low-glycemic index foods",
                    "Include protein and healthy fats with each meal to slow glucose absorption",
                ]
        elif "sodium" in name and status == ResultStatus.HIGH.value:
            recommendations.append(
                "Reduce sodium intake by limiting processed foods, canned soups, and adding less salt while cooking"
            )
        elif "potassium" in name and status == ResultStatus.LOW.value:
            recommendations.append(
                "Increase potassium intake through foods like bananas, oranges, potatoes, and leafy greens"
            )

    diet = _preference(context, "dietaryPreferences", "diet")
    if "vegetarian" in diet or "vegan" in diet:
        recommendations += [
            "Ensure adequate protein intake through plant sources like legumes, tofu, tempeh, and seitan",
            "Consider vitamin B12 supplementation or fortified foods if following a vegan diet",
        ]
    elif "keto" in diet or "low carb" in diet:
        recommendations += [
            "Focus on healthy fats from avocados, olive oil, nuts, and seeds",
            "Include low-carb vegetables like leafy greens, broccoli, and cauliflower",
        ]

    return _unique(recommendations)


def exercise_recommendations(
    report_type: ReportType,
    abnormal: List[Dict[str, Any]],
    context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    recommendations = [
        "Aim for at least 150 minutes of moderate-intensity aerobic activity per week",
        "Include strength training exercises at least twice per week",
    ]

    age = _age(context)
    if age is not None and age >= 65:
        recommendations += [
            "Include balance exercises like tai chi or yoga to prevent falls",
            "Start with lower intensity activities and gradually increase as tolerated",
        ]
    elif age is not None and age >= 40:
        recommendations += [
            "Include flexibility exercises to maintain joint mobility",
            "Consider activities that are gentle on the joints like swimming or cycling",
        ]

    if report_type == ReportType.LIPID_PANEL:
        recommendations += [
            "Prioritize regular aerobic exercise like brisk walking, swimming, or cycling to help improve cholesterol levels",
            "Aim for 30-40 minutes of moderate-intensity exercise most days of the week",
        ]
    elif report_type == ReportType.METABOLIC_PANEL:
        recommendations += [
            "Include both aerobic and resistance training to help improve insulin sensitivity",
            "Consider short walks after meals to help manage blood glucose levels",
        ]

    for result in abnormal:
        name = result["name"].lower()
        if result["status"] != ResultStatus.HIGH.value:
            continue
        if "glucose" in name or "a1c" in name:
            recommendations += [
                "Break up periods of sitting with short bouts of activity throughout the day",
                "Monitor blood glucose before and after exercise to understand your body's response",
            ]
        elif "cholesterol" in name or "ldl" in name:
            recommendations.append(
                "Increase duration of aerobic exercise sessions gradually to 45-60 minutes when possible"
            )
        elif "blood pressure" in name:
            recommendations += [
                "Avoid high-intensity exercises until blood pressure is better controlled",
                "Focus on moderate activities like walking, swimming, or cycling",
            ]

    activity = _preference(context, "exercisePreferences", "exercise")
    if "walking" in activity or "hiking" in activity:
        recommendations.append(
            "Gradually increase walking duration and intensity, aiming for 10,000 steps daily"
        )
    elif "swim" in activity:
        recommendations.append(
            "Swimming is excellent low-impact exercise; aim for 2-3 sessions per week"
        )
    elif "yoga" in activity or "pilates" in activity:
        recommendations.append(
            "Complement yoga or pilates with some aerobic activity for cardiovascular benefits"
        )

    return _unique(recommendations)


def lifestyle_modifications(
    report_type: ReportType,
    abnormal: List[Dict[str, Any]],
    context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    recommendations = [
        "Ensure 7-8 hours of quality sleep each night",
        "Practice stress management techniques such as meditation, deep breathing, or mindfulness",
    ]

    lifestyle = _lifestyle(context)
    if "yes" in _text(lifestyle.get("smoking")):
        recommendations.append(
            "Consider a smoking cessation program or talk to your healthcare provider about quitting resources"
        )
    alcohol = _text(lifestyle.get("alcohol"))
    if alcohol and "none" not in alcohol:
        recommendations.append(
            "Limit alcohol consumption to moderate levels (up to 1 drink per day for women, "
            "up to 2 drinks per day for men)"
        )
    stress = _text(lifestyle.get("stress"))
    if "high" in stress or "moderate" in stress:
        recommendations += [
            "Incorporate regular stress-reduction activities like yoga, tai chi, or hobbies you enjoy",
            "Consider time management strategies to reduce daily stressors",
        ]

    if report_type in (ReportType.LIPID_PANEL, ReportType.METABOLIC_PANEL):
        recommendations += [
            "Maintain a consistent daily routine for meals and physical activity",
            "Keep a food and activity journal to identify patterns and areas for improvement",
        ]

    for result in abnormal:
        name = result["name"].lower()
        if result["status"] != ResultStatus.HIGH.value:
            continue
        if "glucose" in name or "a1c" in name:
            recommendations += [
                "Monitor blood glucose regularly as recommended by your healthcare provider",
                "Learn to recognize and manage stress, which can affect blood glucose levels",
            ]
        elif "cholesterol" in name or "ldl" in name:
            recommendations.append(
                "Consider using a heart-healthy cooking method like baking, steaming, or grilling instead of frying"
            )
        elif "blood pressure" in name:
            recommendations += [
                "Reduce sodium intake and consider following the DASH diet approach",
                "Monitor your blood pressure regularly at home if recommended by your healthcare provider",
            ]

    return _unique(recommendations)


def medication_notes(
    report_type: ReportType,
    abnormal: List[Dict[str, Any]],
    context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    notes = [
        "Continue taking all prescribed medications as directed by your healthcare provider",
        "Do not start or stop any medications without consulting your healthcare provider",
    ]

    medications = (context or {}).get("medications")
    if isinstance(medications, list) and medications:
        notes += [
            "Keep an updated list of all medications, including over-the-counter drugs and supplements",
            "Report any side effects or concerns about your medications to your healthcare provider",
        ]

    if report_type == ReportType.LIPID_PANEL and _has_high(abnormal, "cholesterol", "ldl"):
        notes += [
            "Discuss with your healthcare provider whether cholesterol-lowering medications might be appropriate",
            "If already on cholesterol medication, ensure regular follow-up to assess effectiveness",
        ]
    elif report_type == ReportType.METABOLIC_PANEL and _has_high(abnormal, "glucose", "a1c"):
        notes += [
            "Discuss with your healthcare provider about potential need for glucose-lowering medications",
            "If taking diabetes medications, monitor blood glucose as directed and report any unusual patterns",
        ]

    for result in abnormal:
        name = result["name"].lower()
        if result["status"] != ResultStatus.LOW.value:
            continue
        if "vitamin d" in name:
            notes.append("Discuss vitamin D supplementation with your healthcare provider")
        elif "iron" in name:
            notes.append(
                "Discuss iron supplementation with your healthcare provider, especially if experiencing fatigue"
            )
        elif "b12" in name:
            notes.append(
                "Consider vitamin B12 supplementation after consulting with your healthcare provider"
            )

    return _unique(notes)


def follow_up_schedule(report_type: ReportType, abnormal: List[Dict[str, Any]]) -> str:
    flagged = bool(abnormal)
    if report_type == ReportType.LIPID_PANEL:
        schedule = (
            "Schedule a follow-up lipid panel in 3 months to assess progress. "
            if flagged
            else "Schedule your next lipid panel in 12 months if all values remain normal. "
        )
    elif report_type == ReportType.METABOLIC_PANEL:
        schedule = (
            "Schedule a follow-up metabolic panel in 3-6 months to monitor changes. "
            if flagged
            else "Schedule your next metabolic panel in 12 months if all values remain normal. "
        )
    elif report_type == ReportType.CBC:
        schedule = (
            "Schedule a follow-up CBC in 3 months to monitor blood cell counts. "
            if flagged
            else "Schedule your next CBC in 12 months as part of your annual check-up. "
        )
    elif report_type == ReportType.IMAGING:
        schedule = "Discuss follow-up imaging needs with your specialist based on these findings. "
    else:
        schedule = "Schedule a follow-up appointment with your healthcare provider in 3-6 months. "
    return schedule + FOLLOW_UP_CLOSING


def health_goals(
    report_type: ReportType,
    abnormal: List[Dict[str, Any]],
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, List[Dict[str, str]]]:
    """Goals grouped into ``shortTerm`` and ``longTerm``.

    Anything not explicitly ``long-term`` counts as short term, including
    goals with a concrete timeframe such as ``3 months``.
    """

    goals = [
        {"description": "Schedule all recommended follow-up appointments", "timeframe": "short-term"},
        {"description": "Establish consistent healthy eating and exercise habits", "timeframe": "short-term"},
    ]

    if report_type == ReportType.LIPID_PANEL and _has_high(abnormal, "cholesterol", "ldl"):
        goals += [
            {"description": "Reduce LDL cholesterol by 10-15% through diet and exercise", "timeframe": "3 months"},
            {"description": "Increase HDL cholesterol through regular physical activity", "timeframe": "6 months"},
        ]
    elif report_type == ReportType.METABOLIC_PANEL and _has_high(abnormal, "glucose", "a1c"):
        goals += [
            {"description": "Achieve fasting glucose levels within normal range", "timeframe": "3 months"},
            {"description": "Maintain consistent carbohydrate intake throughout the day", "timeframe": "1 month"},
        ]

    lifestyle = _lifestyle(context)
    if "yes" in _text(lifestyle.get("smoking")):
        goals += [
            {"description": "Reduce smoking by 50% as a step toward quitting", "timeframe": "2 months"},
            {"description": "Quit smoking completely", "timeframe": "long-term"},
        ]
    if "sedentary" in _text(lifestyle.get("exercise")):
        goals.append(
            {"description": "Incorporate at least 30 minutes of physical activity daily", "timeframe": "1 month"}
        )

    goals += [
        {"description": "Achieve and maintain all health metrics within normal ranges", "timeframe": "long-term"},
        {"description": "Develop sustainable lifestyle habits for long-term health", "timeframe": "long-term"},
    ]

    return {
        "shortTerm": [g for g in goals if g["timeframe"] != "long-term"],
        "longTerm": [g for g in goals if g["timeframe"] == "long-term"],
    }


def _report_fields(report: Dict[str, Any]):
    report_type = report.get("type") or report.get("reportType")
    results = report.get("results")
    return ReportType.from_text(report_type), results if isinstance(results, list) else []


def _results_block(results: List[Dict[str, Any]]) -> str:
    lines = []
    for result in results:
        if isinstance(result, dict) and result.get("name"):
            value = result.get("value")
            lines.append(
                f"- {result['name']}: {value if value not in (None, '') else 'N/A'} "
                f"{result.get('unit') or ''} (Status: {result.get('status') or 'Not specified'})"
            )
    return "\n".join(lines)


class RecommendationEngine:
    """Combine the rule generators with an LLM summary."""

    def __init__(self, llm_client=llm_service):
        self._llm_client = llm_client

    def personalized(self, report: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> Dict[str, List[str]]:
        """Dietary, exercise and lifestyle advice attached to an analysis."""

        report_type, results = _report_fields(report)
        abnormal = abnormal_results(results)
        return {
            "dietary": dietary_recommendations(report_type, abnormal, context),
            "exercise": exercise_recommendations(report_type, abnormal, context),
            "lifestyle": lifestyle_modifications(report_type, abnormal, context),
        }

    def build_rules(self, report: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        report_type, results = _report_fields(report)
        abnormal = abnormal_results(results)
        return {
            "dietaryRecommendations": dietary_recommendations(report_type, abnormal, context),
            "exerciseRecommendations": exercise_recommendations(report_type, abnormal, context),
            "lifestyleChanges": lifestyle_modifications(report_type, abnormal, context),
            "medicationNotes": medication_notes(report_type, abnormal, context),
            "followUpSchedule": follow_up_schedule(report_type, abnormal),
            "goals": health_goals(report_type, abnormal, context),
        }

    async def generate_recommendations(
        self, report: Optional[Dict[str, Any]], patient_history: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Recommendations for a report; falls back to generic advice without one."""

        if not report:
            logger.warning("No report data provided for recommendations")
            return fallback_recommendations()

        history = patient_history or {}
        try:
            rules = self.build_rules(report, history)
        except Exception as exc:
            logger.error("Recommendation rules failed: %s", exc)
            return fallback_recommendations()

        summary = await self._summarize(self._summary_prompt(report, history))
        return HealthRecommendations.model_validate({"summary": summary, **rules}).to_wire()

    async def generate_health_plan(
        self, report: Dict[str, Any], patient_data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """A personalised health plan; same shape as the recommendations."""

        data = dict(patient_data or {})
        if data.get("age") is None:
            data["age"] = calculate_age(data.get("dob") or report.get("patientDob"))

        rules = self.build_rules(report, data)
        summary = await self._summarize(self._health_plan_prompt(report, data))
        logger.info(
            "Generated health plan",
            extra={"extra_fields": {"report_id": report.get("id"), "report_type": str(report.get("type"))}},
        )
        return HealthRecommendations.model_validate({"summary": summary, **rules}).to_wire()

    async def _summarize(self, prompt: str) -> str:
        try:
            response = await self._llm_client.generate_text(prompt, max_tokens=512)
        except Exception as exc:
            logger.warning("Recommendation summary unavailable, using default: %s", exc)
            return DEFAULT_SUMMARY
        content = (response or {}).get("content", "").strip()
        return content or DEFAULT_SUMMARY

    def _summary_prompt(self, report: Dict[str, Any], history: Dict[str, Any]) -> str:
        report_type, results = _report_fields(report)
        block = _results_block(results)
        conditions = history.get("conditions")
        medications = history.get("medications")
        lifestyle = history.get("lifestyle")

        parts = [
            "Create a concise summary of health recommendations based on the following data:",
            "",
            f"Report Type: {report_type.value}",
            f"Test Results:\n{block}" if block else "Test Results: No specific test results available",
            "",
            "Patient Information:",
            f"- Age: {history.get('age') or 'Not specified'}",
            f"- Medical Conditions: {', '.join(conditions) if isinstance(conditions, list) and conditions else 'None specified'}",
            f"- Medications: {', '.join(medications) if isinstance(medications, list) and medications else 'None specified'}",
        ]
        if lifestyle:
            parts.append(
                f"- Lifestyle: {lifestyle if isinstance(lifestyle, str) else json.dumps(lifestyle)}"
            )
        parts += [
            "",
            "The summary should be 2-3 sentences highlighting the most important "
            "health actions the patient should take.",
        ]
        return "\n".join(parts)

    def _health_plan_prompt(self, report: Dict[str, Any], data: Dict[str, Any]) -> str:
        report_type, results = _report_fields(report)
        parts = [
            "Generate a comprehensive personalized health plan based on the following "
            "medical report and patient data:",
            f"Report Type: {report_type.value}",
        ]
        block = _results_block(results)
        if block:
            parts.append(f"Test Results:\n{block}")

        details = [
            f"{label}: {data[key]}{suffix}"
            for key, label, suffix in (
                ("age", "Age", ""),
                ("gender", "Gender", ""),
                ("height", "Height", " cm"),
                ("weight", "Weight", " kg"),
            )
            if data.get(key)
        ]
        for key, label in (
            ("conditions", "Existing Conditions"),
            ("medications", "Current Medications"),
            ("allergies", "Allergies"),
        ):
            if isinstance(data.get(key), list) and data[key]:
                details.append(label + ":\n" + "\n".join(f"- {item}" for item in data[key]))
        lifestyle = _lifestyle(data)
        if lifestyle:
            details.append(
                "Lifestyle Factors:\n"
                + "\n".join(f"{k.capitalize()}: {v}" for k, v in lifestyle.items() if v)
            )
        if details:
            parts.append("\nPatient Data:\n" + "\n".join(details))

        parts.append(
            "\nWrite a 2-3 sentence summary of the plan that names the most important "
            "actions for this patient."
        )
        return "\n".join(parts)


recommendation_engine = RecommendationEngine()
