"""
Centralized configuration for all thresholds, weights, and window parameters.

Every tunable constant lives here. Callers resolve one EngineConfig and one
ThresholdConfig per person and pass them down; the engine keeps no global
mutable state.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Sequence


# ---------------------------------------------------------------------------
# Baseline defaults (used whenever a baseline is absent or zero)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BaselineDefaults:
    """Reference values assumed for a person with no usable baseline."""

    sleep_hours: float = 7.0
    sleep_quality: float = 70.0
    hrv: float = 45.0
    resting_hr: float = 65.0
    hours_worked: float = 8.0


# ---------------------------------------------------------------------------
# Factor parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FactorParams:
    """Constants for the raw-to-factor transformations."""

    # Sleep deficit: combined = duration_ratio * w + quality_ratio * (1 - w)
    sleep_duration_weight: float = 0.6
    sleep_quality_weight: float = 0.4
    sleep_floor_ratio: float = 0.6            # at or below → 100
    sleep_deficit_slope: float = 250.0
    sleep_tolerance: Dict[str, float] = field(default_factory=lambda: {
        "rigid": 0.05,
        "moderate": 0.10,
        "flexible": 0.15,
    })

    # HRV stress
    hrv_floor_ratio: float = 0.7              # hrv ratio at or below → 100
    resting_hr_ceiling_ratio: float = 1.2     # resting HR ratio at or above → 100
    hrv_slope: float = 166.0
    resting_hr_slope: float = 500.0
    hrv_blend: float = 0.6
    resting_hr_blend: float = 0.4

    # Work overload
    overtime_penalty_per_hour: float = 10.0
    meeting_penalty_per_hour: float = 10.0
    hours_per_meeting: float = 0.75
    default_max_meeting_hours: float = 4.0
    introvert_meeting_scale: float = 0.75
    extrovert_meeting_scale: float = 1.25

    # Recovery deficit
    deep_sleep_share: float = 0.2             # expected deep sleep = 20% of sleep
    deep_sleep_deficit_scale: float = 50.0
    recovery_deficit_scale: float = 0.5

    # Readiness: sleep quality
    short_sleep_ratio: float = 0.85
    long_sleep_ratio: float = 1.1
    long_sleep_bonus: float = 10.0
    deep_sleep_ratio_cap: float = 1.2

    # Readiness: work-life balance
    balance_overwork_ratio: float = 1.1
    balance_overwork_slope: float = 200.0
    balance_base: float = 60.0
    no_overtime_bonus: float = 20.0
    efficiency_bonus: float = 20.0

    # Readiness: activity level (U-shaped)
    default_exercise_minutes: float = 30.0
    activity_min_optimal: float = 0.8
    activity_max_optimal: float = 1.5
    activity_sedentary: float = 0.3
    activity_overtraining: float = 2.5
    activity_sensitivity: Dict[str, float] = field(default_factory=lambda: {
        "low": 0.5,
        "moderate": 1.0,
        "high": 1.5,
    })

    # Missing-field fallbacks
    fallback_sleep_quality: float = 70.0
    fallback_deep_sleep_hours: float = 1.4
    fallback_recovery_score: float = 50.0

    # Impact labelling
    burnout_negative_above: float = 50.0
    burnout_positive_below: float = 30.0
    readiness_positive_above: float = 70.0
    readiness_negative_below: float = 40.0


# ---------------------------------------------------------------------------
# Aggregation weights
# ---------------------------------------------------------------------------

def _validate_weights(name: str, values: Sequence[float]) -> None:
    if any(v < 0 for v in values):
        raise ValueError(f"{name} weights must be non-negative, got {values}")
    if sum(values) <= 0:
        raise ValueError(f"{name} weights must not all be zero")


@dataclass(frozen=True)
class DefaultWeights:
    """Factor weights used when a person has no preferences on record."""

    burnout_sleep: float = 0.25
    burnout_hrv: float = 0.25
    burnout_work: float = 0.25
    burnout_recovery: float = 0.25

    readiness_sleep: float = 0.30
    readiness_hrv: float = 0.30
    readiness_work: float = 0.20
    readiness_activity: float = 0.20

    def __post_init__(self):
        _validate_weights("Burnout", (
            self.burnout_sleep, self.burnout_hrv,
            self.burnout_work, self.burnout_recovery,
        ))
        _validate_weights("Readiness", (
            self.readiness_sleep, self.readiness_hrv,
            self.readiness_work, self.readiness_activity,
        ))


@dataclass(frozen=True)
class PreferenceWeightDefaults:
    """Per-field fallbacks (0-100 scale) for a partially filled preference row."""

    sleep: float = 50.0
    exercise: float = 30.0
    workload: float = 50.0
    meetings: float = 40.0
    heart_metrics: float = 30.0


# ---------------------------------------------------------------------------
# Interaction effects (declarative)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InteractionPair:
    """Two burnout factors whose simultaneous elevation compounds."""

    first: str
    second: str
    multiplier: float
    label: str


DEFAULT_INTERACTION_PAIRS: tuple = (
    InteractionPair(
        first="sleep_deficit",
        second="work_overload",
        multiplier=1.30,
        label="Poor sleep combined with heavy workload",
    ),
    InteractionPair(
        first="hrv_stress",
        second="work_overload",
        multiplier=1.35,
        label="Physiological stress combined with heavy workload",
    ),
    InteractionPair(
        first="sleep_deficit",
        second="hrv_stress",
        multiplier=1.25,
        label="Poor sleep combined with physiological stress",
    ),
    InteractionPair(
        first="sleep_deficit",
        second="recovery_deficit",
        multiplier=1.20,
        label="Poor sleep combined with incomplete recovery",
    ),
)


@dataclass(frozen=True)
class InteractionParams:
    max_penalty: float = 30.0
    pairs: tuple = DEFAULT_INTERACTION_PAIRS


# ---------------------------------------------------------------------------
# Day-of-week context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DayProfile:
    """Workload expectation for one weekday."""

    label: str
    workload_multiplier: float
    recovery_bonus: float


DEFAULT_DAY_PROFILES: tuple = (
    DayProfile("monday", 1.0, 0.0),
    DayProfile("tuesday", 1.0, 0.0),
    DayProfile("wednesday", 1.0, 0.0),
    DayProfile("thursday", 1.0, 0.0),
    DayProfile("friday", 0.9, 5.0),
    DayProfile("saturday", 0.3, 10.0),
    DayProfile("sunday", 0.3, 10.0),
)


@dataclass(frozen=True)
class ContextParams:
    # Indexed by date.weekday() (Monday == 0)
    day_profiles: tuple = DEFAULT_DAY_PROFILES

    def __post_init__(self):
        if len(self.day_profiles) != 7:
            raise ValueError(
                f"Exactly 7 day profiles required, got {len(self.day_profiles)}"
            )


# ---------------------------------------------------------------------------
# Vacation fatigue
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FatigueParams:
    """Breakpoints mapping days since last strong recovery to a penalty."""

    good_recovery_readiness: float = 80.0
    default_days_since: int = 30
    needs_break_after: int = 21
    # (days strictly above, penalty) checked in order
    breakpoints: tuple = ((30, 15.0), (21, 10.0), (14, 5.0))


# ---------------------------------------------------------------------------
# Self-report calibration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CalibrationParams:
    window_days: int = 14
    min_checkins: int = 3
    min_paired_scores: int = 2
    min_factor: float = 0.8
    max_factor: float = 1.2
    neutral_stress: float = 3.0

    def __post_init__(self):
        if self.min_factor > 1.0 or self.max_factor < 1.0:
            raise ValueError("Calibration bounds must bracket 1.0")


# ---------------------------------------------------------------------------
# Trajectory prediction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PredictionParams:
    window_days: int = 14
    min_days: int = 3
    horizon_days: int = 7
    stable_band: float = 2.0
    high_severity_slope: float = 4.0
    base_confidence: float = 95.0
    confidence_decay: float = 5.0
    min_confidence: float = 50.0
    max_days_until_red: int = 30


# ---------------------------------------------------------------------------
# Zone thresholds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThresholdConfig:
    """Red/green cutoffs and interaction sensitivity for one person."""

    burnout_red: float = 70.0
    readiness_green: float = 70.0
    interaction_high: float = 50.0
    interaction_critical: float = 70.0
    enable_interaction_effects: bool = True
    weekend_adjustment_enabled: bool = True
    threshold_type: str = "absolute"
    override_reason: Optional[str] = None

    def __post_init__(self):
        if self.threshold_type not in ("absolute", "percentile"):
            raise ValueError(f"Unknown threshold type: {self.threshold_type}")
        if self.interaction_critical < self.interaction_high:
            raise ValueError("Interaction critical threshold must be >= high threshold")


@dataclass(frozen=True)
class ThresholdOverride:
    """Partial person-level override; None fields fall through."""

    burnout_red: Optional[float] = None
    readiness_green: Optional[float] = None
    interaction_high: Optional[float] = None
    reason: Optional[str] = None


def resolve_thresholds(
    system: Optional[ThresholdConfig] = None,
    organization: Optional[ThresholdConfig] = None,
    override: Optional[ThresholdOverride] = None,
) -> ThresholdConfig:
    """
    Merge thresholds with precedence: person override > organization > system.

    An organization row replaces the system defaults wholesale; a person
    override only replaces the fields it sets.
    """
    base = organization or system or ThresholdConfig()
    if override is None:
        return base

    interaction_high = (
        override.interaction_high
        if override.interaction_high is not None
        else base.interaction_high
    )
    return replace(
        base,
        burnout_red=override.burnout_red if override.burnout_red is not None else base.burnout_red,
        readiness_green=(
            override.readiness_green
            if override.readiness_green is not None
            else base.readiness_green
        ),
        interaction_high=interaction_high,
        interaction_critical=max(base.interaction_critical, interaction_high),
        override_reason=override.reason,
    )


# ---------------------------------------------------------------------------
# Top-level config aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration. Pass to pipeline to override defaults."""

    baseline_defaults: BaselineDefaults = field(default_factory=BaselineDefaults)
    factors: FactorParams = field(default_factory=FactorParams)
    weights: DefaultWeights = field(default_factory=DefaultWeights)
    preference_weights: PreferenceWeightDefaults = field(default_factory=PreferenceWeightDefaults)
    interactions: InteractionParams = field(default_factory=InteractionParams)
    context: ContextParams = field(default_factory=ContextParams)
    fatigue: FatigueParams = field(default_factory=FatigueParams)
    calibration: CalibrationParams = field(default_factory=CalibrationParams)
    prediction: PredictionParams = field(default_factory=PredictionParams)
