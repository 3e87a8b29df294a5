"""
Personalization: merge baseline, preferences, and active life events into
one EffectiveSettings object.

Pure and deterministic. Life-event percentage adjustments of all active
events are summed linearly before being applied once.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Tuple

from vitalzone.config import EngineConfig
from vitalzone.models import Baseline, LifeEvent, PersonalPreferences

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Adjustments:
    """Summed percentage adjustments from active life events."""

    sleep: float = 0.0
    work: float = 0.0
    exercise: float = 0.0
    stress_tolerance: float = 0.0


@dataclass(frozen=True)
class EffectiveSettings:
    # Baselines after default substitution
    baseline_sleep_hours: float
    baseline_sleep_quality: float
    baseline_hrv: float
    baseline_resting_hr: float
    baseline_hours_worked: float

    # Expectations after preferences and life events
    adjusted_sleep_expectation: float
    adjusted_work_expectation: float
    adjusted_exercise_expectation: float
    ideal_exercise_minutes: float
    max_meeting_hours: float
    stress_tolerance_adjustment: float

    # Normalized weights (each set sums to 1)
    burnout_weights: Tuple[float, float, float, float]
    readiness_weights: Tuple[float, float, float, float]

    # Qualitative modifiers
    chronotype: Optional[str] = None
    social_energy_type: Optional[str] = None
    sleep_flexibility: str = "moderate"
    exercise_importance: str = "moderate"

    personalized: bool = False
    active_events: Tuple[LifeEvent, ...] = ()

    @property
    def has_life_event(self) -> bool:
        return bool(self.active_events)

    @property
    def sleep_expectation_adjusted(self) -> bool:
        return abs(self.adjusted_sleep_expectation - self.baseline_sleep_hours) > 1e-9


def _positive_or(value: Optional[float], default: float) -> float:
    """Return value unless it is missing or not usable as a divisor."""
    if value is None or value <= 0:
        return default
    return float(value)


def _normalize(weights: Tuple[float, ...]) -> Tuple[float, ...]:
    total = sum(weights)
    if total <= 0:
        return tuple(1.0 / len(weights) for _ in weights)
    return tuple(w / total for w in weights)


def active_life_events(events: Iterable[LifeEvent], day: date) -> Tuple[LifeEvent, ...]:
    return tuple(e for e in events if e.active_on(day))


def sum_adjustments(events: Iterable[LifeEvent]) -> Adjustments:
    """Linear sum of every event's adjustment percentages, uncapped."""
    sleep = work = exercise = stress = 0.0
    for event in events:
        sleep += event.sleep_adjustment or 0.0
        work += event.work_adjustment or 0.0
        exercise += event.exercise_adjustment or 0.0
        stress += event.stress_tolerance_adjustment or 0.0
    return Adjustments(sleep=sleep, work=work, exercise=exercise, stress_tolerance=stress)


def resolve_settings(
    baseline: Optional[Baseline],
    preferences: Optional[PersonalPreferences],
    life_events: Iterable[LifeEvent],
    day: date,
    cfg: EngineConfig,
) -> EffectiveSettings:
    """Build the effective settings for one person on one day."""
    bd = cfg.baseline_defaults
    fp = cfg.factors
    dw = cfg.weights

    if baseline is None:
        logger.warning("No baseline on record, using population defaults")
        baseline = Baseline()

    sleep_hours = _positive_or(baseline.sleep_hours, bd.sleep_hours)
    sleep_quality = _positive_or(baseline.sleep_quality, bd.sleep_quality)
    hrv = _positive_or(baseline.hrv, bd.hrv)
    resting_hr = _positive_or(baseline.resting_hr, bd.resting_hr)
    hours_worked = _positive_or(baseline.hours_worked, bd.hours_worked)

    ideal_exercise = fp.default_exercise_minutes
    max_meetings = fp.default_max_meeting_hours
    burnout_weights = (dw.burnout_sleep, dw.burnout_hrv, dw.burnout_work, dw.burnout_recovery)
    readiness_weights = (
        dw.readiness_sleep, dw.readiness_hrv, dw.readiness_work, dw.readiness_activity,
    )
    chronotype = social = None
    flexibility = "moderate"
    importance = "moderate"

    if preferences is not None:
        pw = cfg.preference_weights
        # Personal ideals replace the generic baselines
        sleep_hours = _positive_or(preferences.ideal_sleep_hours, sleep_hours)
        hours_worked = _positive_or(preferences.ideal_work_hours, hours_worked)
        ideal_exercise = _positive_or(preferences.ideal_exercise_minutes, ideal_exercise)
        max_meetings = _positive_or(preferences.max_meeting_hours, max_meetings)

        w_sleep = _positive_or(preferences.weight_sleep, pw.sleep) / 100.0
        w_heart = _positive_or(preferences.weight_heart_metrics, pw.heart_metrics) / 100.0
        w_work = _positive_or(preferences.weight_workload, pw.workload) / 100.0
        w_exercise = _positive_or(preferences.weight_exercise, pw.exercise) / 100.0

        # Recovery always participates at its default weight
        burnout_weights = (w_sleep, w_heart, w_work, dw.burnout_recovery)
        readiness_weights = (w_sleep, w_heart, w_work, w_exercise)

        chronotype = preferences.chronotype
        social = preferences.social_energy_type
        if social == "introvert":
            max_meetings *= fp.introvert_meeting_scale
        elif social == "extrovert":
            max_meetings *= fp.extrovert_meeting_scale

        flexibility = preferences.sleep_flexibility or flexibility
        importance = preferences.exercise_importance or importance

    active = active_life_events(life_events, day)
    adj = sum_adjustments(active)
    if active:
        logger.debug(
            "Applying %d active life event(s): sleep %+.0f%%, work %+.0f%%",
            len(active), adj.sleep, adj.work,
        )

    return EffectiveSettings(
        baseline_sleep_hours=sleep_hours,
        baseline_sleep_quality=sleep_quality,
        baseline_hrv=hrv,
        baseline_resting_hr=resting_hr,
        baseline_hours_worked=hours_worked,
        adjusted_sleep_expectation=sleep_hours * (1 + adj.sleep / 100.0),
        adjusted_work_expectation=hours_worked * (1 + adj.work / 100.0),
        adjusted_exercise_expectation=ideal_exercise * (1 + adj.exercise / 100.0),
        ideal_exercise_minutes=ideal_exercise,
        max_meeting_hours=max_meetings,
        stress_tolerance_adjustment=adj.stress_tolerance,
        burnout_weights=_normalize(burnout_weights),
        readiness_weights=_normalize(readiness_weights),
        chronotype=chronotype,
        social_energy_type=social,
        sleep_flexibility=flexibility,
        exercise_importance=importance,
        personalized=preferences is not None,
        active_events=active,
    )
