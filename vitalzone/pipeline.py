"""
Pipeline orchestration: resolve → score → adjust → compound → calibrate →
classify → explain → persist.

This is the only module that touches I/O (store reads/writes, JSON files,
report formatting). All analytical logic is delegated to personalization,
scoring, context, interactions, fatigue, calibration, zones, explain and
prediction.

Entry points:
    score_day(inputs)           → pure computation for one person-day
    run_daily(store, ...)       → read inputs, score, upsert (write is last)
    run_for_people(store, ...)  → per-person fan-out on a thread pool
    predict_for_person(store, ...) → trajectory forecast from stored history
    analyze(filepath) / analyze_data(payload) → JSON payload mode
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, fields
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from vitalzone.calibration import calibrate
from vitalzone.config import EngineConfig, ThresholdConfig
from vitalzone.context import adjust_work_overload
from vitalzone.explain import build_explanation
from vitalzone.fatigue import assess_fatigue
from vitalzone.interactions import detect_interactions
from vitalzone.models import (
    Baseline,
    FactorKind,
    FeelingCheckin,
    HealthSample,
    LifeEvent,
    PersonalPreferences,
    Prediction,
    ScoringResult,
    WorkSample,
    Zone,
    ZoneTransition,
)
from vitalzone.personalization import resolve_settings
from vitalzone.prediction import predict_trajectory
from vitalzone.scoring import (
    aggregate_burnout,
    aggregate_readiness,
    burnout_factor_values,
    burnout_factors,
    readiness_factor_values,
    readiness_factors,
)
from vitalzone.storage import SQLiteStore, StorageError
from vitalzone.zones import classify_zone, detect_transition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyInputs:
    """Everything the engine reads for one person-day."""

    person_id: str
    day: date
    health: Optional[HealthSample] = None
    work: Optional[WorkSample] = None
    baseline: Optional[Baseline] = None
    preferences: Optional[PersonalPreferences] = None
    life_events: Tuple[LifeEvent, ...] = ()
    checkins: Tuple[FeelingCheckin, ...] = ()
    history: Optional[pd.DataFrame] = field(default=None, compare=False)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    previous_zone: Optional[Zone] = None


def _previous_zone(inputs: DailyInputs) -> Zone:
    """Explicit previous zone, else the latest history row before today, else yellow."""
    if inputs.previous_zone is not None:
        return inputs.previous_zone
    history = inputs.history
    if history is not None and not history.empty:
        dates = pd.to_datetime(history["date"]).dt.date
        prior = history[dates < inputs.day]
        if not prior.empty:
            latest = prior.assign(_d=pd.to_datetime(prior["date"])).sort_values("_d")
            return Zone(latest["zone"].iloc[-1])
    return Zone.YELLOW


# ---------------------------------------------------------------------------
# Core scoring (pure, no I/O)
# ---------------------------------------------------------------------------

def score_day(inputs: DailyInputs, cfg: Optional[EngineConfig] = None) -> ScoringResult:
    """
    Score one person-day.

    Stateless. Deterministic given inputs. Never raises for missing data.
    """
    if cfg is None:
        cfg = EngineConfig()

    day = inputs.day
    thresholds = inputs.thresholds

    health = inputs.health
    if health is None:
        logger.warning("No health sample for %s on %s, using defaults", inputs.person_id, day)
        health = HealthSample(day=day)
    work = inputs.work
    if work is None:
        logger.warning("No work sample for %s on %s, using defaults", inputs.person_id, day)
        work = WorkSample(day=day)

    # Stage 1: Personalization
    settings = resolve_settings(inputs.baseline, inputs.preferences, inputs.life_events, day, cfg)

    # Stage 2: Factors, with day-of-week context on work overload
    b_values = burnout_factor_values(health, work, settings, cfg)
    overload, raw_hours = b_values[FactorKind.WORK_OVERLOAD]
    overload, day_context = adjust_work_overload(overload, work, day, settings, thresholds, cfg)
    b_values[FactorKind.WORK_OVERLOAD] = (overload, raw_hours)
    r_values = readiness_factor_values(health, work, settings, cfg)

    b_factors = burnout_factors(b_values, settings, cfg)
    r_factors = readiness_factors(r_values, settings, cfg)

    # Stage 3: Compounding terms
    interaction_penalty, interactions = detect_interactions(
        {kind.value: score for kind, (score, _) in b_values.items()},
        thresholds,
        cfg,
    )
    fatigue = assess_fatigue(inputs.history, day, cfg)
    calibration = calibrate(inputs.checkins, day, cfg)

    # Stage 4: Aggregate + classify
    burnout = aggregate_burnout(
        b_factors,
        interaction_penalty=interaction_penalty,
        fatigue_penalty=fatigue.penalty,
        calibration_factor=calibration.factor,
    )
    readiness = aggregate_readiness(r_factors)
    zone = classify_zone(burnout, readiness, thresholds)

    logger.debug(
        "%s %s: burnout=%.1f (interaction=%.1f fatigue=%.1f calibration=%.3f) readiness=%.1f zone=%s",
        inputs.person_id, day, burnout, interaction_penalty, fatigue.penalty,
        calibration.factor, readiness, zone.value,
    )

    # Stage 5: Explanation
    explanation = build_explanation(
        zone,
        b_factors + r_factors,
        settings,
        interactions=interactions,
        fatigue=fatigue,
        calibration=calibration,
        day_context=day_context,
    )

    return ScoringResult(
        person_id=inputs.person_id,
        day=day,
        burnout_score=burnout,
        readiness_score=readiness,
        zone=zone,
        previous_zone=_previous_zone(inputs),
        explanation=explanation,
        factors=b_factors + r_factors,
        interaction_penalty=interaction_penalty,
        fatigue_penalty=fatigue.penalty,
        calibration_factor=calibration.factor,
    )


# ---------------------------------------------------------------------------
# Store-backed entry points
# ---------------------------------------------------------------------------

def load_inputs(
    store: SQLiteStore,
    person_id: str,
    day: date,
    organization_id: Optional[str] = None,
    cfg: Optional[EngineConfig] = None,
) -> DailyInputs:
    """Issue every read for one person-day. Reads are independent of each other."""
    if cfg is None:
        cfg = EngineConfig()
    return DailyInputs(
        person_id=person_id,
        day=day,
        health=store.latest_health(person_id, day),
        work=store.latest_work(person_id, day),
        baseline=store.load_baseline(person_id),
        preferences=store.load_preferences(person_id),
        life_events=tuple(store.active_life_events(person_id, day)),
        checkins=tuple(store.recent_checkins(person_id, day, cfg.calibration.window_days)),
        history=store.scoring_history(person_id, before=day),
        thresholds=store.thresholds_for(person_id, organization_id, day),
        previous_zone=store.previous_zone(person_id, day),
    )


def run_daily(
    store: SQLiteStore,
    person_id: str,
    day: date,
    organization_id: Optional[str] = None,
    cfg: Optional[EngineConfig] = None,
) -> Tuple[ScoringResult, Optional[ZoneTransition]]:
    """
    Score one person-day and persist the result.

    The upsert is the final step, so an interrupted or failed run leaves
    nothing behind and can simply be retried. StorageError propagates.
    """
    if cfg is None:
        cfg = EngineConfig()

    inputs = load_inputs(store, person_id, day, organization_id, cfg)
    result = score_day(inputs, cfg)
    store.upsert_scoring_result(result, organization_id)

    transition = detect_transition(person_id, day, result.zone, result.previous_zone)
    logger.info(
        "Scored %s for %s: burnout=%.1f readiness=%.1f zone=%s",
        person_id, day, result.burnout_score, result.readiness_score, result.zone.value,
    )
    if transition is not None:
        logger.info(
            "Zone transition for %s: %s -> %s (%s alert)",
            person_id, transition.previous_zone.value, transition.zone.value, transition.alert_type,
        )
    return result, transition


def run_for_people(
    store: SQLiteStore,
    person_ids: Iterable[str],
    day: date,
    organizations: Optional[Dict[str, str]] = None,
    cfg: Optional[EngineConfig] = None,
    max_workers: int = 4,
) -> Tuple[Dict[str, Tuple[ScoringResult, Optional[ZoneTransition]]], Dict[str, StorageError]]:
    """
    Fan out run_daily over independent people.

    Returns (results, failures). A storage failure for one person does not
    affect the others; failed people should be retried by the scheduler.
    """
    organizations = organizations or {}
    people = list(person_ids)
    results: Dict[str, Tuple[ScoringResult, Optional[ZoneTransition]]] = {}
    failures: Dict[str, StorageError] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            pid: pool.submit(run_daily, store, pid, day, organizations.get(pid), cfg)
            for pid in people
        }
        for pid, future in futures.items():
            try:
                results[pid] = future.result()
            except StorageError as exc:
                logger.error("Scoring %s for %s failed: %s", pid, day, exc)
                failures[pid] = exc

    return results, failures


def predict_for_person(
    store: SQLiteStore,
    person_id: str,
    cfg: Optional[EngineConfig] = None,
    thresholds: Optional[ThresholdConfig] = None,
    organization_id: Optional[str] = None,
) -> Prediction:
    if cfg is None:
        cfg = EngineConfig()
    history = store.scoring_history(person_id)
    if thresholds is None:
        as_of = history["date"].iloc[-1] if not history.empty else date.today()
        thresholds = store.thresholds_for(person_id, organization_id, as_of)
    return predict_trajectory(history, thresholds, cfg)


# ---------------------------------------------------------------------------
# JSON payload mode
# ---------------------------------------------------------------------------

REQUIRED_KEYS = {"person_id", "date", "health", "work"}

_DATE_FIELDS = {"day", "start_date", "end_date"}


def _parse_record(cls, data: Optional[dict], **extra):
    """Build a dataclass from a JSON object, parsing ISO dates."""
    if data is None:
        return None
    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} fields: {unknown}")
    values = dict(data)
    for key in _DATE_FIELDS & set(values):
        if isinstance(values[key], str):
            values[key] = date.fromisoformat(values[key])
    values.update(extra)
    return cls(**values)


def _history_frame(rows: Optional[List[dict]]) -> Optional[pd.DataFrame]:
    if not rows:
        return None
    df = pd.DataFrame(rows)
    missing = {"date", "burnout_score", "readiness_score", "zone"} - set(df.columns)
    if missing:
        raise ValueError(f"Missing history columns: {missing}")
    df["date"] = pd.to_datetime(df["date"]).dt.date
    df.sort_values("date", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def inputs_from_payload(payload: dict) -> DailyInputs:
    """Validate a JSON payload and convert it to DailyInputs."""
    if not payload:
        raise ValueError("Input data cannot be empty")
    missing = REQUIRED_KEYS - set(payload)
    if missing:
        raise ValueError(f"Missing required keys: {missing}")
    for key in ("health", "work"):
        if not isinstance(payload[key], dict):
            raise ValueError(f"'{key}' must be an object, got {type(payload[key]).__name__}")

    day = date.fromisoformat(payload["date"])
    thresholds = payload.get("thresholds")
    previous = payload.get("previous_zone")

    return DailyInputs(
        person_id=str(payload["person_id"]),
        day=day,
        health=_parse_record(HealthSample, {**payload["health"], "day": day.isoformat()}),
        work=_parse_record(WorkSample, {**payload["work"], "day": day.isoformat()}),
        baseline=_parse_record(Baseline, payload.get("baseline")),
        preferences=_parse_record(PersonalPreferences, payload.get("preferences")),
        life_events=tuple(_parse_record(LifeEvent, e) for e in payload.get("life_events", [])),
        checkins=tuple(_parse_record(FeelingCheckin, c) for c in payload.get("checkins", [])),
        history=_history_frame(payload.get("history")),
        thresholds=ThresholdConfig(**thresholds) if thresholds else ThresholdConfig(),
        previous_zone=Zone(previous) if previous else None,
    )


def load_payload(filepath: Union[str, Path]) -> dict:
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    with open(path, "r") as f:
        return json.load(f)


def analyze_data(payload: dict, cfg: Optional[EngineConfig] = None) -> Dict:
    """
    Backend / UI integration entry point.

    Accepts a JSON-shaped dict directly; no store or file system usage.
    Returns the scoring result plus a trajectory forecast over the supplied
    history and today's score.
    """
    if cfg is None:
        cfg = EngineConfig()

    inputs = inputs_from_payload(payload)
    result = score_day(inputs, cfg)

    today_row = pd.DataFrame([{
        "date": result.day,
        "burnout_score": result.burnout_score,
        "readiness_score": result.readiness_score,
        "zone": result.zone.value,
    }])
    history = today_row if inputs.history is None else pd.concat(
        [inputs.history[inputs.history["date"] < result.day], today_row], ignore_index=True,
    )
    prediction = predict_trajectory(history, inputs.thresholds, cfg)

    transition = detect_transition(result.person_id, result.day, result.zone, result.previous_zone)
    out = result.to_dict()
    out["alert"] = transition.alert_type if transition else None
    out["prediction"] = prediction.to_dict()
    return out


def analyze(filepath: Union[str, Path], cfg: Optional[EngineConfig] = None) -> Dict:
    """CLI-compatible entry point. Reads a JSON payload file and scores it."""
    return analyze_data(load_payload(filepath), cfg)


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------

def generate_report(result: Dict) -> str:
    """Format an analyze_data result as a human-readable text report."""
    explanation = result["explanation"]
    lines = [
        "VITALZONE DAILY REPORT",
        "=" * 58,
        "",
        f"  Person              : {result['personId']}",
        f"  Date                : {result['date']}",
        f"  Burnout Score       : {result['burnoutScore']}",
        f"  Readiness Score     : {result['readinessScore']}",
        f"  Zone                : {result['zone'].upper()} (previous: {result['previousZone']})",
    ]
    if result.get("alert"):
        lines.append(f"  Alert               : {result['alert']}")

    lines.append("")
    lines.append("  Top Factors:")
    for f in explanation["factors"]:
        lines.append(f"    {f['name']:20s} : {f['impact']:8s} {f['value']}")
        lines.append(f"    {'':20s}   {f['description']}")

    for effect in explanation.get("interactionEffects", []):
        lines.append("")
        lines.append(f"  Interaction ({effect['severity']}): {effect['label']} (+{effect['penalty']})")

    fatigue = explanation.get("vacationFatigue")
    if fatigue:
        lines.append("")
        lines.append(
            f"  Vacation Fatigue    : {fatigue['daysSinceRecovery']} days since recovery "
            f"(+{fatigue['penalty']})"
        )

    calibration = explanation.get("calibration")
    if calibration:
        lines.append(f"  Calibration         : x{calibration['factor']} from {calibration['checkinsUsed']} check-ins")

    recs = explanation["recommendations"]
    lines.append("")
    lines.append("  For you:")
    for rec in recs["personal"]:
        lines.append(f"    - {rec}")
    lines.append("  For your manager:")
    for rec in recs["leadership"]:
        lines.append(f"    - {rec}")

    prediction = result.get("prediction")
    if prediction and prediction["hasPrediction"]:
        trend = prediction["trend"]
        lines.append("")
        lines.append(
            f"  Trend               : {trend['direction']} ({trend['severity']}, "
            f"{trend['dailyChangePerDay']:+.2f}/day over {prediction['daysAnalyzed']} days)"
        )
        if prediction["daysUntilRed"] is not None:
            lines.append(f"  ⚠  Red zone projected in {prediction['daysUntilRed']} days")

    lines.append("")
    lines.append("=" * 58)
    return "\n".join(lines)
