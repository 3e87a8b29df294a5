"""
Self-report calibration: reconcile subjective check-ins with the
algorithmic burnout score over a rolling window.

The correction is multiplicative and bounded, so self-reports can move the
final score by at most the configured band in either direction.
"""

from datetime import date, timedelta
from typing import Iterable

import numpy as np

from vitalzone.config import EngineConfig
from vitalzone.models import CalibrationResult, FeelingCheckin


def self_reported_burnout(avg_feeling: float, avg_stress: float) -> float:
    """Map 1-5 feeling/stress averages onto the 0-100 burnout scale."""
    return (5.0 - avg_feeling) * 20.0 + (avg_stress - 1.0) * 10.0


def calibrate(checkins: Iterable[FeelingCheckin], today: date, cfg: EngineConfig) -> CalibrationResult:
    """
    Derive the calibration factor from check-ins in the trailing window.

    Needs `min_checkins` check-ins and `min_paired_scores` of them carrying
    the algorithmic score recorded at check-in time; otherwise neutral.
    """
    cp = cfg.calibration
    start = today - timedelta(days=cp.window_days)
    window = [c for c in checkins if start < c.day <= today]

    if len(window) < cp.min_checkins:
        return CalibrationResult(checkins_used=len(window))

    paired = [c.burnout_score_at_checkin for c in window if c.burnout_score_at_checkin is not None]
    if len(paired) < cp.min_paired_scores:
        return CalibrationResult(checkins_used=len(window))

    avg_feeling = float(np.mean([c.overall_feeling for c in window]))
    stresses = [c.stress_level for c in window if c.stress_level is not None]
    avg_stress = float(np.mean(stresses)) if stresses else cp.neutral_stress

    self_score = self_reported_burnout(avg_feeling, avg_stress)
    algo_score = float(np.mean(paired))
    discrepancy = self_score - algo_score

    factor = float(np.clip(1.0 + discrepancy / 100.0, cp.min_factor, cp.max_factor))
    return CalibrationResult(
        factor=factor,
        status="calibrated",
        checkins_used=len(window),
        self_reported_score=self_score,
        algorithmic_score=algo_score,
        discrepancy=discrepancy,
    )
