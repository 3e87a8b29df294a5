from datetime import date

from vitalzone.config import EngineConfig
from vitalzone.models import Factor, FactorKind, HealthSample, Impact, PersonalPreferences, WorkSample
from vitalzone.personalization import resolve_settings
from vitalzone.scoring import (
    activity_level,
    aggregate_burnout,
    aggregate_readiness,
    burnout_factor_values,
    burnout_factors,
    classify_impact,
    hrv_recovery,
    hrv_stress,
    readiness_factor_values,
    readiness_factors,
    recovery_deficit,
    sleep_deficit,
    sleep_quality,
    work_life_balance,
    work_overload,
)

CFG = EngineConfig()
FP = CFG.factors
DAY = date(2026, 10, 14)
S = resolve_settings(None, None, (), DAY, CFG)


def approx(a, b, tol=0.01):
    assert abs(a - b) < tol, f"{a} != {b} (tol={tol})"


def health(**kw):
    return HealthSample(day=DAY, **kw)


def work(**kw):
    return WorkSample(day=DAY, **kw)


# -- Burnout side -------------------------------------------------------------

def test_sleep_deficit_at_baseline_is_zero():
    score, raw = sleep_deficit(health(sleep_hours=7, sleep_quality=70), S, FP)
    assert score == 0.0
    assert raw == 7


def test_sleep_deficit_floor():
    score, _ = sleep_deficit(health(sleep_hours=4, sleep_quality=40), S, FP)
    assert score == 100.0


def test_sleep_tolerance_depends_on_flexibility():
    rigid = resolve_settings(None, PersonalPreferences(sleep_flexibility="rigid"), (), DAY, CFG)
    sample = health(sleep_hours=6.3, sleep_quality=70)
    moderate_score, _ = sleep_deficit(sample, S, FP)
    rigid_score, _ = sleep_deficit(sample, rigid, FP)
    assert moderate_score == 0.0
    approx(rigid_score, 15.0)


def test_sleep_deficit_missing_fields_fall_back():
    score, raw = sleep_deficit(health(), S, FP)
    assert score == 0.0
    assert raw == 7.0


def test_hrv_stress_at_baseline_is_zero():
    score, _ = hrv_stress(health(hrv=45, resting_hr=65), S, FP)
    assert score == 0.0


def test_hrv_stress_floor():
    score, _ = hrv_stress(health(hrv=30, resting_hr=65), S, FP)
    assert score == 100.0


def test_hrv_stress_partial_drop():
    score, _ = hrv_stress(health(hrv=40, resting_hr=65), S, FP)
    approx(score, (1 - 40 / 45) * 166 * 0.6)


def test_work_overload_hours_and_overtime():
    score, raw = work_overload(work(hours_worked=12, overtime_hours=3), S, FP)
    approx(score, 80.0, 1e-9)
    assert raw == 12


def test_work_overload_meeting_cap():
    score, _ = work_overload(work(hours_worked=8, meeting_hours=6), S, FP)
    approx(score, 20.0, 1e-9)


def test_meetings_attended_converted_to_hours():
    # 8 meetings at 45 minutes = 6 hours, two over the cap
    score, _ = work_overload(work(hours_worked=8, meetings_attended=8), S, FP)
    approx(score, 20.0, 1e-9)


def test_recovery_deficit_from_device_score():
    score, _ = recovery_deficit(health(sleep_hours=7, deep_sleep_hours=1.4, recovery_score=70), S, FP)
    approx(score, 15.0, 1e-9)


def test_recovery_deficit_defaults_when_missing():
    score, raw = recovery_deficit(health(), S, FP)
    approx(score, 25.0, 1e-9)
    assert raw == FP.fallback_deep_sleep_hours


# -- Readiness side -----------------------------------------------------------

def test_sleep_quality_short_sleep_is_capped():
    score, _ = sleep_quality(health(sleep_hours=5, sleep_quality=70, deep_sleep_hours=1.0), S, FP)
    approx(score, 35.0, 1e-9)


def test_sleep_quality_at_baseline():
    score, _ = sleep_quality(health(sleep_hours=7, sleep_quality=70, deep_sleep_hours=1.4), S, FP)
    approx(score, 70.0)


def test_hrv_recovery_at_baseline():
    score, _ = hrv_recovery(health(hrv=45, resting_hr=65), S, FP)
    approx(score, 100.0, 1e-9)


def test_hrv_recovery_zero_resting_hr_does_not_divide_by_zero():
    score, _ = hrv_recovery(health(hrv=45, resting_hr=0), S, FP)
    assert 0.0 <= score <= 100.0


def test_work_life_balance_overwork():
    score, _ = work_life_balance(work(hours_worked=10), S, FP)
    approx(score, 20.0)


def test_work_life_balance_ideal_day():
    score, _ = work_life_balance(work(hours_worked=8, overtime_hours=0, tasks_assigned=5, tasks_completed=5), S, FP)
    approx(score, 100.0, 1e-9)


def test_activity_is_u_shaped():
    assert activity_level(health(exercise_minutes=30), S, FP)[0] == 100.0
    assert activity_level(health(exercise_minutes=0), S, FP)[0] == 40.0
    assert activity_level(health(exercise_minutes=100), S, FP)[0] == 60.0
    approx(activity_level(health(exercise_minutes=20), S, FP)[0], 90.0)
    approx(activity_level(health(exercise_minutes=50), S, FP)[0], 100 - (5 / 30) * 40)


def test_activity_sedentary_penalty_scales_with_importance():
    high = resolve_settings(None, PersonalPreferences(exercise_importance="high"), (), DAY, CFG)
    low = resolve_settings(None, PersonalPreferences(exercise_importance="low"), (), DAY, CFG)
    assert activity_level(health(exercise_minutes=0), high, FP)[0] == 60.0
    assert activity_level(health(exercise_minutes=0), low, FP)[0] == 20.0


# -- Bounds -------------------------------------------------------------------

EXTREMES = [
    (health(), work()),
    (
        health(sleep_hours=0, sleep_quality=0, deep_sleep_hours=0, hrv=0, resting_hr=0,
               exercise_minutes=0, recovery_score=0),
        work(hours_worked=0, overtime_hours=0, meeting_hours=0, tasks_assigned=0, tasks_completed=0),
    ),
    (
        health(sleep_hours=14, sleep_quality=100, deep_sleep_hours=5, hrv=500, resting_hr=200,
               exercise_minutes=600, recovery_score=100),
        work(hours_worked=24, overtime_hours=16, meeting_hours=20, tasks_assigned=3, tasks_completed=30),
    ),
]


def test_every_factor_score_in_range():
    for h, w in EXTREMES:
        values = {**burnout_factor_values(h, w, S, CFG), **readiness_factor_values(h, w, S, CFG)}
        assert set(values) == set(FactorKind)
        for kind, (score, _) in values.items():
            assert 0.0 <= score <= 100.0, f"{kind}: {score}"


def test_aggregate_scores_in_range():
    for h, w in EXTREMES:
        b = burnout_factors(burnout_factor_values(h, w, S, CFG), S, CFG)
        r = readiness_factors(readiness_factor_values(h, w, S, CFG), S, CFG)
        burnout = aggregate_burnout(b, interaction_penalty=30, fatigue_penalty=15, calibration_factor=1.2)
        assert 0.0 <= burnout <= 100.0
        assert 0.0 <= aggregate_readiness(r) <= 100.0


# -- Aggregation --------------------------------------------------------------

def _factor(kind, score, weight):
    return Factor(kind=kind, raw_value=None, normalized_score=score, weight=weight,
                  impact=classify_impact(kind, score, FP))


def test_aggregate_burnout_applies_penalties_then_calibration():
    factors = [_factor(k, 40.0, 0.25) for k in (
        FactorKind.SLEEP_DEFICIT, FactorKind.HRV_STRESS,
        FactorKind.WORK_OVERLOAD, FactorKind.RECOVERY_DEFICIT,
    )]
    approx(aggregate_burnout(factors), 40.0, 1e-9)
    approx(aggregate_burnout(factors, interaction_penalty=10, fatigue_penalty=5), 55.0, 1e-9)
    approx(aggregate_burnout(factors, interaction_penalty=10, fatigue_penalty=5, calibration_factor=0.8), 44.0, 1e-9)


def test_aggregate_burnout_clamps_before_calibration():
    factors = [_factor(FactorKind.SLEEP_DEFICIT, 100.0, 1.0)]
    approx(aggregate_burnout(factors, interaction_penalty=30, calibration_factor=0.8), 80.0, 1e-9)


def test_impact_labels():
    assert classify_impact(FactorKind.SLEEP_DEFICIT, 60, FP) is Impact.NEGATIVE
    assert classify_impact(FactorKind.SLEEP_DEFICIT, 10, FP) is Impact.POSITIVE
    assert classify_impact(FactorKind.SLEEP_DEFICIT, 40, FP) is Impact.NEUTRAL
    assert classify_impact(FactorKind.ACTIVITY_LEVEL, 90, FP) is Impact.POSITIVE
    assert classify_impact(FactorKind.ACTIVITY_LEVEL, 20, FP) is Impact.NEGATIVE
