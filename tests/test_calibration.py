from datetime import date, timedelta

from vitalzone.calibration import calibrate, self_reported_burnout
from vitalzone.config import EngineConfig
from vitalzone.models import FeelingCheckin

CFG = EngineConfig()
TODAY = date(2026, 10, 14)


def approx(a, b, tol=0.01):
    assert abs(a - b) < tol, f"{a} != {b} (tol={tol})"


def checkin(days_ago, feeling, stress=None, score=None):
    return FeelingCheckin(
        day=TODAY - timedelta(days=days_ago),
        overall_feeling=feeling,
        stress_level=stress,
        burnout_score_at_checkin=score,
    )


def test_self_reported_scale():
    assert self_reported_burnout(5, 1) == 0.0
    assert self_reported_burnout(1, 5) == 120.0
    assert self_reported_burnout(3, 3) == 60.0


def test_too_few_checkins_is_neutral():
    result = calibrate([checkin(1, 2, 4, 50), checkin(2, 2, 4, 50)], TODAY, CFG)
    assert result.factor == 1.0
    assert result.status == "insufficient_data"
    assert result.checkins_used == 2


def test_too_few_paired_scores_is_neutral():
    result = calibrate([checkin(1, 2, 4, 50), checkin(2, 2, 4), checkin(3, 2, 4)], TODAY, CFG)
    assert result.factor == 1.0
    assert result.status == "insufficient_data"


def test_feeling_worse_than_scored_raises_factor_to_cap():
    result = calibrate([checkin(1, 2, 4, 50), checkin(3, 2, 4, 50), checkin(5, 2, 4)], TODAY, CFG)
    assert result.status == "calibrated"
    approx(result.self_reported_score, 90.0, 1e-9)
    approx(result.discrepancy, 40.0, 1e-9)
    assert result.factor == 1.2


def test_feeling_better_than_scored_lowers_factor():
    result = calibrate([checkin(1, 4, 2, 40), checkin(2, 4, 2, 40), checkin(3, 4, 2)], TODAY, CFG)
    approx(result.factor, 0.9, 1e-9)


def test_missing_stress_uses_neutral_value():
    result = calibrate([checkin(1, 3, None, 60), checkin(2, 3, None, 60), checkin(3, 3)], TODAY, CFG)
    assert result.status == "calibrated"
    approx(result.factor, 1.0, 1e-9)


def test_checkins_outside_window_are_ignored():
    old = [checkin(20, 1, 5, 10), checkin(21, 1, 5, 10), checkin(14, 1, 5, 10)]
    result = calibrate(old, TODAY, CFG)
    assert result.checkins_used == 0
    assert result.factor == 1.0


def test_factor_always_bounded():
    for feeling in (1, 2, 3, 4, 5):
        for stress in (1, 3, 5):
            for score in (0, 50, 100):
                result = calibrate([checkin(i, feeling, stress, score) for i in range(3)], TODAY, CFG)
                assert 0.8 <= result.factor <= 1.2
