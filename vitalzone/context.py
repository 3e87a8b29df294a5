"""
Day-of-week context: weekend- and weekday-aware modulation of work overload.

On lighter days the expected workload is scaled down. Working below that
scaled expectation earns the day's recovery bonus as a reduction of the
work-overload factor, so light weekends are neither read as overload nor
as a sudden improvement against the weekday baseline.
"""

from datetime import date
from typing import Tuple

from vitalzone.config import DayProfile, EngineConfig, ThresholdConfig
from vitalzone.models import DayContext, WorkSample
from vitalzone.personalization import EffectiveSettings

WEEKEND = (5, 6)


def day_profile(day: date, cfg: EngineConfig) -> DayProfile:
    return cfg.context.day_profiles[day.weekday()]


def adjust_work_overload(
    work_overload: float,
    work: WorkSample,
    day: date,
    settings: EffectiveSettings,
    thresholds: ThresholdConfig,
    cfg: EngineConfig,
) -> Tuple[float, DayContext]:
    """
    Return (adjusted work-overload score, day context).

    The adjustment only fires when weekend adjustment is enabled, the day
    carries a bonus, and hours worked are below baseline × multiplier.
    Missing hours count as "not below".
    """
    profile = day_profile(day, cfg)
    expected = settings.baseline_hours_worked * profile.workload_multiplier

    applied = (
        thresholds.weekend_adjustment_enabled
        and profile.recovery_bonus > 0
        and work.hours_worked is not None
        and work.hours_worked < expected
    )
    adjusted = max(0.0, work_overload - profile.recovery_bonus) if applied else work_overload

    context = DayContext(
        day_name=profile.label,
        is_weekend=day.weekday() in WEEKEND,
        workload_multiplier=profile.workload_multiplier,
        recovery_bonus=profile.recovery_bonus,
        applied=applied,
    )
    return adjusted, context
