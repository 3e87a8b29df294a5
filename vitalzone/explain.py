"""
Explanation and recommendations.

Ranks the day's factors by |score - 50| · weight, keeps the strongest view
of each physical signal, renders the top entries, and builds two parallel
recommendation lists: personal (self-directed) and leadership
(manager-directed).
"""

from typing import Dict, List, Optional, Sequence, Tuple

from vitalzone.models import (
    CalibrationResult,
    DayContext,
    ExplainedFactor,
    Explanation,
    Factor,
    FactorKind,
    FatigueAssessment,
    Impact,
    InteractionEffect,
    Recommendations,
    Zone,
)
from vitalzone.personalization import EffectiveSettings
from vitalzone.scoring import _divisor

TOP_FACTORS = 4
MAX_RECOMMENDATIONS = 6


# ---------------------------------------------------------------------------
# Description templates: kind → impact → (plain, with-life-event)
# ---------------------------------------------------------------------------

_DESCRIPTIONS: Dict[FactorKind, Dict[Impact, Tuple[str, str]]] = {
    FactorKind.SLEEP_DEFICIT: {
        Impact.NEGATIVE: (
            "Your sleep has been below your personal ideal recently",
            "Your sleep is below your adjusted expectation during {event}",
        ),
        Impact.POSITIVE: ("Your sleep quality has been excellent for you",) * 2,
        Impact.NEUTRAL: ("Your sleep is consistent with your personal baseline",) * 2,
    },
    FactorKind.SLEEP_QUALITY: {
        Impact.NEGATIVE: (
            "Your sleep has been below your personal ideal recently",
            "Your sleep is below your adjusted expectation during {event}",
        ),
        Impact.POSITIVE: ("Your sleep quality has been excellent for you",) * 2,
        Impact.NEUTRAL: ("Your sleep is consistent with your personal baseline",) * 2,
    },
    FactorKind.HRV_STRESS: {
        Impact.NEGATIVE: (
            "Your HRV indicates elevated stress levels",
            "Your HRV indicates elevated stress, which is expected during {event}",
        ),
        Impact.POSITIVE: ("Your HRV shows good recovery and low stress",) * 2,
        Impact.NEUTRAL: ("Your stress indicators are within your normal range",) * 2,
    },
    FactorKind.HRV_RECOVERY: {
        Impact.NEGATIVE: ("Your recovery metrics indicate you need more rest",) * 2,
        Impact.POSITIVE: ("Your body is showing strong recovery signals",) * 2,
        Impact.NEUTRAL: ("Your recovery is at your baseline levels",) * 2,
    },
    FactorKind.WORK_OVERLOAD: {
        Impact.NEGATIVE: (
            "You've been working more than your ideal hours",
            "Working more than adjusted expectations for {event}",
        ),
        Impact.POSITIVE: ("You've maintained your ideal work hours",) * 2,
        Impact.NEUTRAL: ("Your work hours are consistent with your preferences",) * 2,
    },
    FactorKind.WORK_LIFE_BALANCE: {
        Impact.NEGATIVE: ("Your work-life balance may need attention based on your preferences",) * 2,
        Impact.POSITIVE: ("You've maintained a healthy work-life balance",) * 2,
        Impact.NEUTRAL: ("Your work-life balance is stable",) * 2,
    },
    FactorKind.RECOVERY_DEFICIT: {
        Impact.NEGATIVE: ("Your deep sleep and recovery time has been lower than your needs",) * 2,
        Impact.POSITIVE: ("You're getting quality restorative sleep",) * 2,
        Impact.NEUTRAL: ("Your recovery metrics are meeting your needs",) * 2,
    },
    FactorKind.ACTIVITY_LEVEL: {
        Impact.NEGATIVE: ("Your activity level is below your {ideal} minute goal",) * 2,
        Impact.POSITIVE: ("You're hitting your personal activity goals",) * 2,
        Impact.NEUTRAL: ("Your activity is within your target range",) * 2,
    },
}

_missing = set(FactorKind) - set(_DESCRIPTIONS)
if _missing:
    raise RuntimeError(f"No description templates for: {sorted(k.value for k in _missing)}")


def _signed_percent(value: float, reference: float) -> str:
    diff = (value - reference) / reference * 100.0
    return f"{'+' if diff >= 0 else ''}{round(diff)}%"


def format_factor_value(factor: Factor, settings: EffectiveSettings) -> str:
    """Render the raw value relative to the person's own reference."""
    kind = factor.kind
    raw = factor.raw_value

    if raw is None:
        return f"Score: {round(factor.normalized_score)}"

    # Stacked life events can push an expectation to zero or below
    sleep_reference = _divisor(settings.adjusted_sleep_expectation, settings.baseline_sleep_hours)
    work_reference = _divisor(settings.adjusted_work_expectation, settings.baseline_hours_worked)

    if kind is FactorKind.SLEEP_DEFICIT:
        label = " (adjusted)" if settings.sleep_expectation_adjusted else ""
        return f"{_signed_percent(raw, sleep_reference)} vs your ideal{label}"
    if kind is FactorKind.SLEEP_QUALITY:
        return f"{round(raw)}/100 sleep quality"
    if kind in (FactorKind.HRV_STRESS, FactorKind.HRV_RECOVERY):
        return f"{_signed_percent(raw, settings.baseline_hrv)} vs baseline"
    if kind in (FactorKind.WORK_OVERLOAD, FactorKind.WORK_LIFE_BALANCE):
        return f"{_signed_percent(raw, work_reference)} vs your ideal"
    if kind is FactorKind.RECOVERY_DEFICIT:
        return f"{raw:.1f}h deep sleep"
    if kind is FactorKind.ACTIVITY_LEVEL:
        diff = raw - settings.ideal_exercise_minutes
        if abs(diff) < 5:
            return f"{round(raw)} min (on target)"
        return f"{round(raw)} min ({'+' if diff > 0 else ''}{round(diff)} from ideal)"
    raise ValueError(f"Unhandled factor kind: {kind}")


def describe_factor(factor: Factor, settings: EffectiveSettings) -> str:
    plain, with_event = _DESCRIPTIONS[factor.kind][factor.impact]
    event = settings.active_events[0].label if settings.has_life_event else None
    template = with_event if event else plain
    return template.format(event=event, ideal=round(settings.ideal_exercise_minutes))


def rank_factors(factors: Sequence[Factor]) -> List[Factor]:
    """
    Sort by absolute impact, keeping only the strongest factor per display
    name (the burnout and readiness views of sleep share one).
    """
    best: Dict[str, Factor] = {}
    for f in factors:
        name = f.kind.display_name
        if name not in best or f.absolute_impact > best[name].absolute_impact:
            best[name] = f
    return sorted(best.values(), key=lambda f: f.absolute_impact, reverse=True)


def explain_factors(factors: Sequence[Factor], settings: EffectiveSettings) -> Tuple[ExplainedFactor, ...]:
    return tuple(
        ExplainedFactor(
            name=f.kind.display_name,
            kind=f.kind,
            impact=f.impact,
            value=format_factor_value(f, settings),
            description=describe_factor(f, settings),
            weight=f.weight,
            normalized_score=f.normalized_score,
        )
        for f in rank_factors(factors)[:TOP_FACTORS]
    )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def _sleep_is_negative(factors: Sequence[Factor]) -> bool:
    return any(
        f.kind in (FactorKind.SLEEP_DEFICIT, FactorKind.SLEEP_QUALITY) and f.impact is Impact.NEGATIVE
        for f in factors
    )


def recommend(
    zone: Zone,
    factors: Sequence[Factor],
    settings: EffectiveSettings,
    fatigue: Optional[FatigueAssessment] = None,
) -> Recommendations:
    personal: List[str] = []
    leadership: List[str] = []

    event = settings.active_events[0].label if settings.has_life_event else None
    chronotype = settings.chronotype
    social = settings.social_energy_type

    if zone is Zone.RED:
        if event:
            personal.append("During this time, focus on essentials and be gentle with yourself")
        personal.append("Take short breaks every 90 minutes to prevent mental fatigue")
        if chronotype == "night_owl":
            personal.append("As a night owl, try to protect your evening productivity hours")
        elif chronotype == "early_bird":
            personal.append("As an early bird, prioritize your most important work in the morning")
        if social == "introvert":
            personal.append("Block quiet time on your calendar to recharge between meetings")
        if _sleep_is_negative(factors):
            personal.append("Prioritize getting your ideal sleep hours - set a bedtime alarm")
        personal.append("Consider using the wellness resources in the app")

        leadership.append("DIVERSION: Reassign non-critical tasks to reduce workload by 20-30%")
        if event:
            leadership.append(f'CONTEXT: Employee is experiencing "{event}" - expectations adjusted')
        leadership.append("SUPPORT: Schedule a 1:1 check-in to discuss priorities")
        leadership.append("PROTECT: Shield from new project requests until recovery")
        if social == "introvert":
            leadership.append("MEETINGS: Reduce meeting load - this person recharges with alone time")

    elif zone is Zone.GREEN:
        personal.append("This is a great time to tackle challenging projects")
        if chronotype == "night_owl":
            personal.append("Schedule your creative work in the evening when you peak")
        elif chronotype == "early_bird":
            personal.append("Tackle your hardest problems in the morning")
        if social == "extrovert":
            personal.append("Great time for collaborative work and team projects")
        personal.append("Maintain your current wellness routine - it's working!")

        leadership.append("OPPORTUNITY: Assign high-impact, challenging projects")
        leadership.append("GROWTH: Offer stretch assignments or leadership opportunities")
        if social == "extrovert":
            leadership.append("MENTORSHIP: Leverage their energy to support struggling teammates")
        leadership.append("RECOGNITION: Acknowledge their peak performance state")

    else:
        personal.append("Maintain your current routine and monitor trends")
        if event:
            personal.append(f"You're managing {event} well")
        personal.append("Focus on consistent sleep schedule this week")

        leadership.append("MONITOR: Keep standard workload, watch for trend changes")
        leadership.append("BALANCE: Ensure mix of challenging and routine tasks")
        leadership.append("CHECK-IN: Brief weekly sync to gauge wellbeing")

    if fatigue is not None and fatigue.needs_break:
        personal.insert(0, (
            f"It has been {fatigue.days_since_recovery} days since your last full recovery "
            "- plan some time off"
        ))
        leadership.append("TIME OFF: Encourage a few days of leave to reset accumulated fatigue")

    return Recommendations(
        personal=tuple(personal[:MAX_RECOMMENDATIONS]),
        leadership=tuple(leadership[:MAX_RECOMMENDATIONS]),
    )


def build_explanation(
    zone: Zone,
    factors: Sequence[Factor],
    settings: EffectiveSettings,
    interactions: Sequence[InteractionEffect] = (),
    fatigue: Optional[FatigueAssessment] = None,
    calibration: Optional[CalibrationResult] = None,
    day_context: Optional[DayContext] = None,
) -> Explanation:
    """Assemble the structured explanation with its optional side channels."""
    return Explanation(
        factors=explain_factors(factors, settings),
        recommendations=recommend(zone, rank_factors(factors), settings, fatigue),
        interactions=tuple(interactions),
        fatigue=fatigue if fatigue is not None and fatigue.penalty > 0 else None,
        calibration=calibration,
        day_context=day_context,
        life_events=tuple(e.label for e in settings.active_events),
        using_personal_baselines=settings.personalized,
        chronotype=settings.chronotype,
    )
