"""
Factor scoring: transforms one day's raw samples into [0, 100] factor scores,
and aggregates weighted factors into the burnout and readiness scores.

Every calculator is a pure, total function. Missing inputs fall back to the
neutral value for that signal (the person's own expectation) or to the
fixed fallbacks in FactorParams; zero or missing baselines were already
replaced by defaults in EffectiveSettings.
"""

from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from vitalzone.config import EngineConfig, FactorParams
from vitalzone.models import (
    BURNOUT_KINDS,
    READINESS_KINDS,
    Factor,
    FactorKind,
    FactorSide,
    HealthSample,
    Impact,
    WorkSample,
)
from vitalzone.personalization import EffectiveSettings

SCORE_MAX = 100.0

# (normalized score, raw value that produced it)
FactorValue = Tuple[float, Optional[float]]


def clamp_score(value: float) -> float:
    return float(np.clip(value, 0.0, SCORE_MAX))


def _or(value: Optional[float], default: float) -> float:
    return default if value is None else float(value)


def _divisor(value: float, default: float) -> float:
    return value if value > 0 else default


# ---------------------------------------------------------------------------
# Burnout-side factors (0 = no concern, 100 = severe)
# ---------------------------------------------------------------------------

def sleep_deficit(health: HealthSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    """Blend of duration and quality ratios with a flexibility tolerance band."""
    expected = _divisor(s.adjusted_sleep_expectation, s.baseline_sleep_hours)
    hours = _or(health.sleep_hours, expected)
    quality = _or(health.sleep_quality, fp.fallback_sleep_quality)

    duration_ratio = hours / expected
    quality_ratio = quality / s.baseline_sleep_quality
    combined = duration_ratio * fp.sleep_duration_weight + quality_ratio * fp.sleep_quality_weight

    tolerance = fp.sleep_tolerance.get(s.sleep_flexibility, fp.sleep_tolerance["moderate"])
    if combined >= 1.0 - tolerance:
        return 0.0, hours
    if combined <= fp.sleep_floor_ratio:
        return SCORE_MAX, hours
    return clamp_score((1.0 - combined) * fp.sleep_deficit_slope), hours


def hrv_stress(health: HealthSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    """HRV drop and resting-HR rise vs. baseline, widened by stress tolerance."""
    hrv = _or(health.hrv, s.baseline_hrv)
    resting_hr = _or(health.resting_hr, s.baseline_resting_hr)

    hrv_ratio = hrv / s.baseline_hrv
    hr_ratio = resting_hr / s.baseline_resting_hr
    tolerance = s.stress_tolerance_adjustment / 100.0

    if hrv_ratio >= 1.0 - tolerance and hr_ratio <= 1.0 + tolerance:
        return 0.0, hrv
    if hrv_ratio <= fp.hrv_floor_ratio or hr_ratio >= fp.resting_hr_ceiling_ratio:
        return SCORE_MAX, hrv

    hrv_part = max(0.0, (1.0 - hrv_ratio) * fp.hrv_slope)
    hr_part = max(0.0, (hr_ratio - 1.0) * fp.resting_hr_slope)
    return clamp_score(hrv_part * fp.hrv_blend + hr_part * fp.resting_hr_blend), hrv


def meeting_hours(work: WorkSample, fp: FactorParams) -> float:
    if work.meeting_hours is not None:
        return float(work.meeting_hours)
    return _or(work.meetings_attended, 0.0) * fp.hours_per_meeting


def work_overload(work: WorkSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    """Hours over expectation plus linear overtime and meeting-cap penalties."""
    expected = _divisor(s.adjusted_work_expectation, s.baseline_hours_worked)
    hours = _or(work.hours_worked, expected)

    base = max(0.0, (hours / expected - 1.0) * 100.0)
    overtime = max(0.0, _or(work.overtime_hours, 0.0)) * fp.overtime_penalty_per_hour
    meetings = max(0.0, meeting_hours(work, fp) - s.max_meeting_hours) * fp.meeting_penalty_per_hour

    return clamp_score(base + overtime + meetings), hours


def recovery_deficit(health: HealthSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    """Deep-sleep shortfall plus the inverse of the device recovery score."""
    expected_sleep = _divisor(s.adjusted_sleep_expectation, s.baseline_sleep_hours)
    expected_deep = expected_sleep * fp.deep_sleep_share
    deep = _or(health.deep_sleep_hours, fp.fallback_deep_sleep_hours)
    recovery = _or(health.recovery_score, fp.fallback_recovery_score)

    deep_part = max(0.0, (1.0 - deep / expected_deep) * fp.deep_sleep_deficit_scale)
    recovery_part = max(0.0, (SCORE_MAX - recovery) * fp.recovery_deficit_scale)
    return clamp_score(deep_part + recovery_part), deep


# ---------------------------------------------------------------------------
# Readiness-side factors (0 = depleted, 100 = fully ready)
# ---------------------------------------------------------------------------

def sleep_quality(health: HealthSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    expected = _divisor(s.adjusted_sleep_expectation, s.baseline_sleep_hours)
    hours = _or(health.sleep_hours, expected)
    quality = _or(health.sleep_quality, fp.fallback_sleep_quality)
    deep = _or(health.deep_sleep_hours, fp.fallback_deep_sleep_hours)

    hours_ratio = hours / expected
    deep_ratio = deep / _divisor(hours * fp.deep_sleep_share, fp.fallback_deep_sleep_hours)

    if hours_ratio < fp.short_sleep_ratio:
        return clamp_score(min(50.0, quality * 0.5)), quality

    bonus = fp.long_sleep_bonus if hours_ratio > fp.long_sleep_ratio else 0.0
    return clamp_score(quality * min(fp.deep_sleep_ratio_cap, deep_ratio) + bonus), quality


def hrv_recovery(health: HealthSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    hrv = _or(health.hrv, s.baseline_hrv)
    resting_hr = _divisor(_or(health.resting_hr, s.baseline_resting_hr), s.baseline_resting_hr)

    hrv_ratio = hrv / s.baseline_hrv
    hr_ratio = s.baseline_resting_hr / resting_hr

    if hrv_ratio >= 1.1 and hr_ratio >= 1.0:
        return SCORE_MAX, hrv
    if hrv_ratio < 0.8 or hr_ratio < 0.9:
        return clamp_score(hrv_ratio * 50.0), hrv
    return clamp_score(hrv_ratio * 50.0 + hr_ratio * 50.0), hrv


def work_life_balance(work: WorkSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    expected = _divisor(s.adjusted_work_expectation, s.baseline_hours_worked)
    hours = _or(work.hours_worked, expected)
    hours_ratio = hours / expected

    if hours_ratio > fp.balance_overwork_ratio:
        return clamp_score(50.0 - (hours_ratio - fp.balance_overwork_ratio) * fp.balance_overwork_slope), hours

    assigned = _or(work.tasks_assigned, 0.0)
    efficiency = _or(work.tasks_completed, 0.0) / assigned if assigned > 0 else 1.0
    no_overtime = fp.no_overtime_bonus if _or(work.overtime_hours, 0.0) == 0 else 0.0
    return clamp_score(fp.balance_base + no_overtime + efficiency * fp.efficiency_bonus), hours


def activity_level(health: HealthSample, s: EffectiveSettings, fp: FactorParams) -> FactorValue:
    """U-shaped: full marks inside the optimal band, penalties on both sides."""
    minutes = max(0.0, _or(health.exercise_minutes, 0.0))
    ideal = _divisor(s.adjusted_exercise_expectation, fp.default_exercise_minutes)
    sensitivity = fp.activity_sensitivity.get(s.exercise_importance, 1.0)

    min_optimal = ideal * fp.activity_min_optimal
    max_optimal = ideal * fp.activity_max_optimal

    if min_optimal <= minutes <= max_optimal:
        return SCORE_MAX, minutes
    if minutes < ideal * fp.activity_sedentary:
        return clamp_score(40.0 * sensitivity), minutes
    if minutes > ideal * fp.activity_overtraining:
        return 60.0, minutes
    if minutes < min_optimal:
        return clamp_score(40.0 + (minutes / min_optimal) * 60.0), minutes
    return clamp_score(100.0 - ((minutes - max_optimal) / ideal) * 40.0), minutes


# ---------------------------------------------------------------------------
# Batch helpers
# ---------------------------------------------------------------------------

def burnout_factor_values(
    health: HealthSample,
    work: WorkSample,
    s: EffectiveSettings,
    cfg: EngineConfig,
) -> Dict[FactorKind, FactorValue]:
    fp = cfg.factors
    return {
        FactorKind.SLEEP_DEFICIT: sleep_deficit(health, s, fp),
        FactorKind.HRV_STRESS: hrv_stress(health, s, fp),
        FactorKind.WORK_OVERLOAD: work_overload(work, s, fp),
        FactorKind.RECOVERY_DEFICIT: recovery_deficit(health, s, fp),
    }


def readiness_factor_values(
    health: HealthSample,
    work: WorkSample,
    s: EffectiveSettings,
    cfg: EngineConfig,
) -> Dict[FactorKind, FactorValue]:
    fp = cfg.factors
    return {
        FactorKind.SLEEP_QUALITY: sleep_quality(health, s, fp),
        FactorKind.HRV_RECOVERY: hrv_recovery(health, s, fp),
        FactorKind.WORK_LIFE_BALANCE: work_life_balance(work, s, fp),
        FactorKind.ACTIVITY_LEVEL: activity_level(health, s, fp),
    }


def classify_impact(kind: FactorKind, score: float, fp: FactorParams) -> Impact:
    if kind.side is FactorSide.BURNOUT:
        if score > fp.burnout_negative_above:
            return Impact.NEGATIVE
        if score < fp.burnout_positive_below:
            return Impact.POSITIVE
        return Impact.NEUTRAL
    if score > fp.readiness_positive_above:
        return Impact.POSITIVE
    if score < fp.readiness_negative_below:
        return Impact.NEGATIVE
    return Impact.NEUTRAL


def build_factors(
    values: Dict[FactorKind, FactorValue],
    kinds: Sequence[FactorKind],
    weights: Sequence[float],
    fp: FactorParams,
) -> Tuple[Factor, ...]:
    """Attach weights and impact labels, in the fixed order of `kinds`."""
    factors = []
    for kind, weight in zip(kinds, weights):
        score, raw = values[kind]
        factors.append(Factor(
            kind=kind,
            raw_value=raw,
            normalized_score=score,
            weight=weight,
            impact=classify_impact(kind, score, fp),
        ))
    return tuple(factors)


def burnout_factors(values, s: EffectiveSettings, cfg: EngineConfig) -> Tuple[Factor, ...]:
    return build_factors(values, BURNOUT_KINDS, s.burnout_weights, cfg.factors)


def readiness_factors(values, s: EffectiveSettings, cfg: EngineConfig) -> Tuple[Factor, ...]:
    return build_factors(values, READINESS_KINDS, s.readiness_weights, cfg.factors)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def weighted_sum(factors: Sequence[Factor]) -> float:
    scores = np.array([f.normalized_score for f in factors], dtype=np.float64)
    weights = np.array([f.weight for f in factors], dtype=np.float64)
    return float(np.dot(scores, weights))


def aggregate_burnout(
    factors: Sequence[Factor],
    interaction_penalty: float = 0.0,
    fatigue_penalty: float = 0.0,
    calibration_factor: float = 1.0,
) -> float:
    """
    burnout = clamp(Σ factor·weight + interaction + fatigue) · calibration,
    clamped again after calibration.
    """
    raw = clamp_score(weighted_sum(factors) + interaction_penalty + fatigue_penalty)
    return clamp_score(raw * calibration_factor)


def aggregate_readiness(factors: Sequence[Factor]) -> float:
    """Plain weighted sum; readiness carries no compounding terms."""
    return clamp_score(weighted_sum(factors))
