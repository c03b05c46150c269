"""
Workforce analyzer — classifies employees from aggregated metrics.

Two implementations share one interface, ``analyze_workforce(metrics, period_label)``:

  RuleBasedWorkforceAnalyzer  deterministic thresholds, no network
  LLMWorkforceAnalyzer        generative model via LLMClient; any failure
                              (provider error, empty or malformed JSON)
                              falls back to the rule-based analyzer

build_workforce_analyzer() picks the LLM analyzer only when an API key is
configured.
"""
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

from app.config import (
    AI_TEMPERATURE,
    CLASS_LEADER,
    CLASS_NEEDS_IMPROVEMENT,
    CLASS_RISK,
    CLASS_STEADY,
    LEADER_MIN_KPI_SCORE,
    LEADER_MIN_MOOD,
    NEUTRAL_MOOD_SCORE,
    RISK_MAX_KPI_SCORE,
    RISK_MAX_MOOD,
    STEADY_MIN_KPI_SCORE,
    WORKFORCE_CLASSIFICATIONS,
    ai_api_key,
)
from app.services.llm_client import LLMClient, get_system_prompt

logger = logging.getLogger("hr-api.analysis")

NO_CRITICAL_WEAKNESS = "لا توجد نقاط ضعف حرجة"


@dataclass
class AIAnalysisResult:
    employee_name: str
    classification: str
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    suggested_courses: List[str] = field(default_factory=list)
    manager_notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _metric(data: Any, key: str, default: Optional[float]) -> Optional[float]:
    raw = data.get(key) if isinstance(data, dict) else getattr(data, key, None)
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _as_dict(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else data.to_dict()


class RuleBasedWorkforceAnalyzer:
    """Deterministic classification by KPI score and average mood."""

    async def analyze_workforce(self, metrics: Sequence[Any], period_label: str) -> List[AIAnalysisResult]:
        return self.classify_all(metrics)

    def classify_all(self, metrics: Sequence[Any]) -> List[AIAnalysisResult]:
        return [self.classify(m) for m in metrics]

    def classify(self, data: Any) -> AIAnalysisResult:
        score = _metric(data, "current_kpi_score", 0.0)
        mood = _metric(data, "average_mood_score", NEUTRAL_MOOD_SCORE)
        name = _as_dict(data).get("name", "")

        strengths: List[str] = []
        weaknesses: List[str] = []

        if score >= LEADER_MIN_KPI_SCORE and mood >= LEADER_MIN_MOOD:
            classification = CLASS_LEADER
            strengths = ["أداء استثنائي", "روح قيادية", "ثبات انفعالي"]
            courses = ["القيادة الاستراتيجية", "إدارة فرق العمل المتقدمة"]
            notes = "هذا الموظف جوهرة يجب الحفاظ عليها. فكر في ترقيته أو تسليمه مسؤوليات أكبر."
        elif score < RISK_MAX_KPI_SCORE or mood < RISK_MAX_MOOD:
            classification = CLASS_RISK
            weaknesses = ["انخفاض الإنتاجية", "مؤشرات انسحاب", "جودة عمل منخفضة"]
            courses = ["إدارة الوقت والأولويات", "أساسيات الالتزام المهني"]
            notes = "هناك خطر حقيقي. يجب الجلوس معه فوراً لفهم الأسباب أو البدء في البحث عن بديل (Plan C)."
        elif score < STEADY_MIN_KPI_SCORE:
            classification = CLASS_NEEDS_IMPROVEMENT
            strengths = ["يحاول بجد", "ملتزم بالحضور"]
            weaknesses = ["يحتاج توجيه فني", "بطء في التنفيذ"]
            courses = ["تحسين الكفاءة التشغيلية", "مهارات التواصل الفعال"]
            notes = "لديه القابلية للتطور ولكن يحتاج إلى خطة تحسين ومتابعة دقيقة."
        else:
            classification = CLASS_STEADY
            strengths = ["منجز للمهام", "مستقر", "يعتمد عليه"]
            courses = ["تنمية المهارات الإبداعية", "الذكاء العاطفي"]
            notes = "موظف مستقر وجيد. شجعه للحفاظ على هذا المستوى."

        return AIAnalysisResult(
            employee_name=name,
            classification=classification,
            strengths=strengths,
            weaknesses=weaknesses or [NO_CRITICAL_WEAKNESS],
            suggested_courses=courses,
            manager_notes=notes,
        )


def _string_list(item: dict, key: str) -> List[str]:
    value = item.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
        raise ValueError(f"AI result field {key!r} is not a list of strings")
    return list(value)


def parse_analysis_response(raw: str) -> List[AIAnalysisResult]:
    """
    Parse the model's JSON: either an array of results or an object wrapping
    one under any key. Raises ValueError on anything that does not validate.
    """
    if not raw or not raw.strip():
        raise ValueError("Empty response from AI model")
    payload = json.loads(raw)
    if isinstance(payload, dict):
        arrays = [v for v in payload.values() if isinstance(v, list)]
        if not arrays:
            raise ValueError("AI response object holds no result array")
        payload = arrays[0]
    if not isinstance(payload, list):
        raise ValueError("AI response is not a JSON array")

    results = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValueError("AI result entry is not an object")
        classification = item.get("classification")
        if classification not in WORKFORCE_CLASSIFICATIONS:
            raise ValueError(f"Unknown classification: {classification!r}")
        results.append(
            AIAnalysisResult(
                employee_name=str(item.get("employeeName", "")),
                classification=classification,
                strengths=_string_list(item, "strengths"),
                weaknesses=_string_list(item, "weaknesses"),
                suggested_courses=_string_list(item, "suggestedCourses"),
                manager_notes=str(item.get("managerNotes", "")),
            )
        )
    return results


class LLMWorkforceAnalyzer:
    def __init__(self, llm: LLMClient, fallback: Optional[RuleBasedWorkforceAnalyzer] = None):
        self.llm = llm
        self.fallback = fallback or RuleBasedWorkforceAnalyzer()

    def build_messages(self, metrics: Sequence[Any], period_label: str) -> list:
        data = json.dumps([_as_dict(m) for m in metrics], ensure_ascii=False)
        allowed = ", ".join(f"'{c}'" for c in WORKFORCE_CLASSIFICATIONS)
        prompt = (
            f"قم بتحليل بيانات الموظفين التالية للفترة: {period_label}.\n"
            "Return ONLY a JSON array. Each item must have: employeeName (string), "
            "classification (string), strengths (string[]), weaknesses (string[]), "
            "suggestedCourses (string[]), managerNotes (string).\n"
            f"Allowed classifications: {allowed}.\n\n"
            f"البيانات: {data}"
        )
        return [
            {"role": "system", "content": get_system_prompt("hr_analyst")},
            {"role": "user", "content": prompt},
        ]

    async def analyze_workforce(self, metrics: Sequence[Any], period_label: str) -> List[AIAnalysisResult]:
        try:
            raw = await self.llm.chat(
                self.build_messages(metrics, period_label),
                temperature=AI_TEMPERATURE,
                json_mode=True,
            )
            results = parse_analysis_response(raw)
            logger.info(f"AI workforce analysis returned {len(results)} result(s) for {period_label}")
            return results
        except (RuntimeError, ValueError) as e:
            logger.warning(f"AI workforce analysis failed, using rule-based fallback: {e}")
            return self.fallback.classify_all(metrics)


def build_workforce_analyzer(api_key: Optional[str] = None):
    key = api_key if api_key is not None else ai_api_key()
    if key:
        return LLMWorkforceAnalyzer(LLMClient(api_key=key))
    logger.info("No AI API key configured — workforce analysis runs rule-based only")
    return RuleBasedWorkforceAnalyzer()
