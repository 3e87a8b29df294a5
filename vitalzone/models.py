"""
Typed records consumed and produced by the engine.

Inputs are immutable snapshots handed over by upstream collaborators.
Optional fields may be None; the factor calculators substitute documented
fallbacks instead of failing.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Zone(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class FactorSide(str, Enum):
    BURNOUT = "burnout"
    READINESS = "readiness"


class Impact(str, Enum):
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"


class FactorKind(str, Enum):
    """Closed set of factors. Explanation templates cover every member."""

    SLEEP_DEFICIT = "sleep_deficit"
    HRV_STRESS = "hrv_stress"
    WORK_OVERLOAD = "work_overload"
    RECOVERY_DEFICIT = "recovery_deficit"
    SLEEP_QUALITY = "sleep_quality"
    HRV_RECOVERY = "hrv_recovery"
    WORK_LIFE_BALANCE = "work_life_balance"
    ACTIVITY_LEVEL = "activity_level"

    @property
    def side(self) -> FactorSide:
        if self in BURNOUT_KINDS:
            return FactorSide.BURNOUT
        return FactorSide.READINESS

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


BURNOUT_KINDS: Tuple[FactorKind, ...] = (
    FactorKind.SLEEP_DEFICIT,
    FactorKind.HRV_STRESS,
    FactorKind.WORK_OVERLOAD,
    FactorKind.RECOVERY_DEFICIT,
)

READINESS_KINDS: Tuple[FactorKind, ...] = (
    FactorKind.SLEEP_QUALITY,
    FactorKind.HRV_RECOVERY,
    FactorKind.WORK_LIFE_BALANCE,
    FactorKind.ACTIVITY_LEVEL,
)

# Both sleep views share a display name so the explanation keeps only the
# stronger of the two.
_DISPLAY_NAMES = {
    FactorKind.SLEEP_DEFICIT: "Sleep Quality",
    FactorKind.HRV_STRESS: "Stress Level (HRV)",
    FactorKind.WORK_OVERLOAD: "Work Hours",
    FactorKind.RECOVERY_DEFICIT: "Recovery",
    FactorKind.SLEEP_QUALITY: "Sleep Quality",
    FactorKind.HRV_RECOVERY: "HRV Recovery",
    FactorKind.WORK_LIFE_BALANCE: "Work-Life Balance",
    FactorKind.ACTIVITY_LEVEL: "Activity Level",
}


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HealthSample:
    """One person-day of wearable telemetry."""

    day: date
    sleep_hours: Optional[float] = None
    sleep_quality: Optional[float] = None
    deep_sleep_hours: Optional[float] = None
    rem_sleep_hours: Optional[float] = None
    core_sleep_hours: Optional[float] = None
    awake_hours: Optional[float] = None
    resting_hr: Optional[float] = None
    hrv: Optional[float] = None
    exercise_minutes: Optional[float] = None
    recovery_score: Optional[float] = None


@dataclass(frozen=True)
class WorkSample:
    """One person-day of work-tool telemetry."""

    day: date
    hours_worked: Optional[float] = None
    overtime_hours: Optional[float] = None
    meetings_attended: Optional[int] = None
    meeting_hours: Optional[float] = None
    tasks_assigned: Optional[int] = None
    tasks_completed: Optional[int] = None
    emails_sent: Optional[int] = None


@dataclass(frozen=True)
class Baseline:
    """Long-run reference values; None or zero means "use the default"."""

    sleep_hours: Optional[float] = None
    sleep_quality: Optional[float] = None
    hrv: Optional[float] = None
    resting_hr: Optional[float] = None
    hours_worked: Optional[float] = None


@dataclass(frozen=True)
class PersonalPreferences:
    """Self-declared targets. Weights are 0-100 and normalized at use time."""

    ideal_sleep_hours: Optional[float] = None
    ideal_work_hours: Optional[float] = None
    ideal_exercise_minutes: Optional[float] = None
    max_meeting_hours: Optional[float] = None
    weight_sleep: Optional[float] = None
    weight_exercise: Optional[float] = None
    weight_workload: Optional[float] = None
    weight_meetings: Optional[float] = None
    weight_heart_metrics: Optional[float] = None
    chronotype: Optional[str] = None             # early_bird | neutral | night_owl
    social_energy_type: Optional[str] = None     # introvert | ambivert | extrovert
    sleep_flexibility: Optional[str] = None      # rigid | moderate | flexible
    exercise_importance: Optional[str] = None    # low | moderate | high


@dataclass(frozen=True)
class LifeEvent:
    label: str
    start_date: date
    end_date: Optional[date] = None
    event_type: str = "custom"
    sleep_adjustment: float = 0.0
    work_adjustment: float = 0.0
    exercise_adjustment: float = 0.0
    stress_tolerance_adjustment: float = 0.0
    is_active: bool = True

    def active_on(self, day: date) -> bool:
        if not self.is_active or self.start_date > day:
            return False
        return self.end_date is None or day <= self.end_date


@dataclass(frozen=True)
class FeelingCheckin:
    day: date
    overall_feeling: float                       # 1-5, higher is better
    stress_level: Optional[float] = None         # 1-5, higher is worse
    burnout_score_at_checkin: Optional[float] = None


# ---------------------------------------------------------------------------
# Intermediate results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Factor:
    kind: FactorKind
    raw_value: Optional[float]
    normalized_score: float
    weight: float
    impact: Impact

    @property
    def absolute_impact(self) -> float:
        return abs(self.normalized_score - 50.0) * self.weight


@dataclass(frozen=True)
class InteractionEffect:
    first: str
    second: str
    label: str
    severity: str                                # elevated | critical
    penalty: float


@dataclass(frozen=True)
class FatigueAssessment:
    days_since_recovery: int
    penalty: float
    needs_break: bool
    last_recovery_date: Optional[date] = None


@dataclass(frozen=True)
class CalibrationResult:
    factor: float = 1.0
    status: str = "insufficient_data"            # insufficient_data | calibrated
    checkins_used: int = 0
    self_reported_score: Optional[float] = None
    algorithmic_score: Optional[float] = None
    discrepancy: Optional[float] = None


@dataclass(frozen=True)
class DayContext:
    day_name: str
    is_weekend: bool
    workload_multiplier: float
    recovery_bonus: float
    applied: bool = False


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExplainedFactor:
    name: str
    kind: FactorKind
    impact: Impact
    value: str
    description: str
    weight: float
    normalized_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "impact": self.impact.value,
            "value": self.value,
            "description": self.description,
            "weight": round(self.weight, 4),
            "normalizedScore": round(self.normalized_score, 2),
        }


@dataclass(frozen=True)
class Recommendations:
    personal: Tuple[str, ...] = ()
    leadership: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Explanation:
    factors: Tuple[ExplainedFactor, ...]
    recommendations: Recommendations
    interactions: Tuple[InteractionEffect, ...] = ()
    fatigue: Optional[FatigueAssessment] = None
    calibration: Optional[CalibrationResult] = None
    day_context: Optional[DayContext] = None
    life_events: Tuple[str, ...] = ()
    using_personal_baselines: bool = False
    chronotype: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "factors": [f.to_dict() for f in self.factors],
            "recommendations": {
                "personal": list(self.recommendations.personal),
                "leadership": list(self.recommendations.leadership),
            },
        }
        if self.interactions:
            out["interactionEffects"] = [
                {
                    "factors": [i.first, i.second],
                    "label": i.label,
                    "severity": i.severity,
                    "penalty": round(i.penalty, 2),
                }
                for i in self.interactions
            ]
        if self.fatigue is not None:
            out["vacationFatigue"] = {
                "daysSinceRecovery": self.fatigue.days_since_recovery,
                "penalty": self.fatigue.penalty,
                "needsBreak": self.fatigue.needs_break,
                "lastRecoveryDate": (
                    self.fatigue.last_recovery_date.isoformat()
                    if self.fatigue.last_recovery_date else None
                ),
            }
        if self.calibration is not None and self.calibration.status == "calibrated":
            out["calibration"] = {
                "factor": round(self.calibration.factor, 4),
                "checkinsUsed": self.calibration.checkins_used,
                "selfReportedScore": round(self.calibration.self_reported_score, 2),
                "algorithmicScore": round(self.calibration.algorithmic_score, 2),
                "discrepancy": round(self.calibration.discrepancy, 2),
            }
        if self.day_context is not None:
            out["dayContext"] = {
                "dayName": self.day_context.day_name,
                "isWeekend": self.day_context.is_weekend,
                "workloadMultiplier": self.day_context.workload_multiplier,
                "recoveryBonus": self.day_context.recovery_bonus,
                "applied": self.day_context.applied,
            }
        context: Dict[str, Any] = {}
        if self.life_events:
            context["activeLifeEvents"] = [
                {"label": label, "impact": "Expectations adjusted for this period"}
                for label in self.life_events
            ]
        if self.using_personal_baselines:
            context["usingPersonalBaselines"] = True
            context["chronotype"] = self.chronotype
        if context:
            out["context"] = context
        return out


@dataclass(frozen=True)
class ScoringResult:
    """The single persisted artifact: one per (person, day)."""

    person_id: str
    day: date
    burnout_score: float
    readiness_score: float
    zone: Zone
    previous_zone: Zone
    explanation: Explanation
    factors: Tuple[Factor, ...] = field(default=(), compare=False)
    interaction_penalty: float = 0.0
    fatigue_penalty: float = 0.0
    calibration_factor: float = 1.0

    @property
    def zone_changed(self) -> bool:
        return self.zone != self.previous_zone

    def to_dict(self) -> Dict[str, Any]:
        return {
            "personId": self.person_id,
            "date": self.day.isoformat(),
            "burnoutScore": round(self.burnout_score, 2),
            "readinessScore": round(self.readiness_score, 2),
            "zone": self.zone.value,
            "previousZone": self.previous_zone.value,
            "zoneChanged": self.zone_changed,
            "explanation": self.explanation.to_dict(),
        }


@dataclass(frozen=True)
class ForecastPoint:
    day: int
    predicted_score: float
    predicted_zone: Zone
    confidence: float


@dataclass(frozen=True)
class Prediction:
    has_prediction: bool
    days_analyzed: int
    current_score: Optional[float] = None
    current_zone: Optional[Zone] = None
    direction: Optional[str] = None              # worsening | improving | stable
    severity: Optional[str] = None               # high | moderate | low
    daily_change: Optional[float] = None
    days_until_red: Optional[int] = None
    forecast: Tuple[ForecastPoint, ...] = ()
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.has_prediction:
            return {
                "hasPrediction": False,
                "daysAnalyzed": self.days_analyzed,
                "message": self.message,
            }
        return {
            "hasPrediction": True,
            "currentScore": round(self.current_score, 2),
            "currentZone": self.current_zone.value,
            "trend": {
                "direction": self.direction,
                "severity": self.severity,
                "dailyChangePerDay": round(self.daily_change, 2),
            },
            "daysUntilRed": self.days_until_red,
            "forecast": [
                {
                    "day": p.day,
                    "predictedScore": round(p.predicted_score, 2),
                    "predictedZone": p.predicted_zone.value,
                    "confidence": p.confidence,
                }
                for p in self.forecast
            ],
            "daysAnalyzed": self.days_analyzed,
        }


@dataclass(frozen=True)
class ZoneTransition:
    """Signal for the external alerting system; nothing is sent from here."""

    person_id: str
    day: date
    previous_zone: Zone
    zone: Zone
    alert_type: str                              # burnout | opportunity
