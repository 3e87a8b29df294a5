from datetime import date

from vitalzone.config import EngineConfig
from vitalzone.models import Baseline, LifeEvent, PersonalPreferences
from vitalzone.personalization import resolve_settings, sum_adjustments

CFG = EngineConfig()
DAY = date(2026, 10, 14)


def approx(a, b, tol=0.01):
    assert abs(a - b) < tol, f"{a} != {b} (tol={tol})"


def event(label, sleep=0.0, work=0.0, start=date(2026, 10, 1), end=None, active=True):
    return LifeEvent(
        label=label,
        start_date=start,
        end_date=end,
        sleep_adjustment=sleep,
        work_adjustment=work,
        is_active=active,
    )


def test_missing_baseline_uses_defaults():
    s = resolve_settings(None, None, (), DAY, CFG)
    assert s.baseline_sleep_hours == 7.0
    assert s.baseline_sleep_quality == 70.0
    assert s.baseline_hrv == 45.0
    assert s.baseline_resting_hr == 65.0
    assert s.baseline_hours_worked == 8.0
    assert not s.personalized


def test_zero_baseline_values_are_replaced():
    s = resolve_settings(Baseline(sleep_hours=0, hrv=0, resting_hr=0), None, (), DAY, CFG)
    assert s.baseline_sleep_hours == 7.0
    assert s.baseline_hrv == 45.0
    assert s.baseline_resting_hr == 65.0


def test_life_event_stacking_is_linear():
    events = (event("Move", sleep=-10), event("Newborn", sleep=-10))
    s = resolve_settings(Baseline(sleep_hours=7), None, events, DAY, CFG)
    approx(s.adjusted_sleep_expectation, 5.6, 1e-9)
    assert s.sleep_expectation_adjusted


def test_inactive_and_expired_events_are_ignored():
    events = (
        event("Paused", sleep=-10, active=False),
        event("Over", sleep=-10, end=date(2026, 10, 10)),
        event("Future", sleep=-10, start=date(2026, 10, 20)),
    )
    s = resolve_settings(Baseline(sleep_hours=7), None, events, DAY, CFG)
    assert s.adjusted_sleep_expectation == 7.0
    assert not s.has_life_event


def test_sum_adjustments():
    adj = sum_adjustments([event("a", sleep=-5, work=10), event("b", sleep=-5, work=5)])
    assert adj.sleep == -10
    assert adj.work == 15


def test_preferences_replace_ideals():
    prefs = PersonalPreferences(ideal_sleep_hours=8, ideal_work_hours=7, ideal_exercise_minutes=45)
    s = resolve_settings(Baseline(), prefs, (), DAY, CFG)
    assert s.adjusted_sleep_expectation == 8.0
    assert s.adjusted_work_expectation == 7.0
    assert s.ideal_exercise_minutes == 45.0
    assert s.personalized


def test_preference_weights_are_normalized():
    prefs = PersonalPreferences(weight_sleep=80, weight_heart_metrics=10, weight_workload=60)
    s = resolve_settings(None, prefs, (), DAY, CFG)
    approx(sum(s.burnout_weights), 1.0, 1e-9)
    approx(sum(s.readiness_weights), 1.0, 1e-9)
    assert s.burnout_weights[0] > s.burnout_weights[1]


def test_meeting_cap_follows_social_energy():
    introvert = resolve_settings(None, PersonalPreferences(social_energy_type="introvert"), (), DAY, CFG)
    extrovert = resolve_settings(None, PersonalPreferences(social_energy_type="extrovert"), (), DAY, CFG)
    approx(introvert.max_meeting_hours, 3.0, 1e-9)
    approx(extrovert.max_meeting_hours, 5.0, 1e-9)
