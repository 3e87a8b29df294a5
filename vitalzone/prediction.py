"""
Trajectory prediction: linear extrapolation of the burnout score.

Fits ordinary least squares of score against a 0..n-1 day index over the
trailing window and projects a fixed horizon forward. Readiness is fitted
the same way so each projected point gets a full zone classification.
"""

import math
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from vitalzone.config import EngineConfig, PredictionParams, ThresholdConfig
from vitalzone.models import ForecastPoint, Prediction
from vitalzone.zones import classify_zone


# ---------------------------------------------------------------------------
# OLS primitives
# ---------------------------------------------------------------------------

def ols_fit(y: np.ndarray) -> Tuple[float, float]:
    """
    Closed-form OLS on x = 0..n-1 using the standard sum formulas:

        slope     = (n·Σxy - Σx·Σy) / (n·Σx² - (Σx)²)
        intercept = (Σy - slope·Σx) / n

    Returns (0, mean) for fewer than two points.
    """
    n = len(y)
    if n == 0:
        return 0.0, 0.0
    if n < 2:
        return 0.0, float(y[0])
    x = np.arange(n, dtype=np.float64)
    sum_x = x.sum()
    sum_y = y.sum()
    denom = n * np.dot(x, x) - sum_x ** 2
    if denom == 0.0:
        return 0.0, float(sum_y / n)
    slope = (n * np.dot(x, y) - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return float(slope), float(intercept)


# ---------------------------------------------------------------------------
# Trend classification
# ---------------------------------------------------------------------------

def classify_trend(slope: float, p: PredictionParams) -> Tuple[str, str]:
    """Map a burnout slope (points/day) to (direction, severity)."""
    if slope > p.stable_band:
        direction = "worsening"
    elif slope < -p.stable_band:
        direction = "improving"
    else:
        return "stable", "low"
    severity = "high" if abs(slope) > p.high_severity_slope else "moderate"
    return direction, severity


def days_until_red(current: float, slope: float, thresholds: ThresholdConfig, p: PredictionParams) -> Optional[int]:
    if slope <= 0 or current >= thresholds.burnout_red:
        return None
    days = math.ceil((thresholds.burnout_red - current) / slope)
    return days if days <= p.max_days_until_red else None


def forecast_confidence(day_offset: int, p: PredictionParams) -> float:
    return max(p.min_confidence, p.base_confidence - p.confidence_decay * day_offset)


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------

def predict_trajectory(
    history: Optional[pd.DataFrame],
    thresholds: ThresholdConfig,
    cfg: EngineConfig,
) -> Prediction:
    """
    Forecast the burnout trajectory from scoring history.

    Args:
        history: one row per day with columns date, burnout_score,
            readiness_score (readiness optional)
    """
    p = cfg.prediction
    if history is None or history.empty:
        return Prediction(has_prediction=False, days_analyzed=0, message="Not enough history for prediction")

    tail = history.sort_values("date").tail(p.window_days)
    n = len(tail)
    if n < p.min_days:
        return Prediction(
            has_prediction=False,
            days_analyzed=n,
            message=f"Need at least {p.min_days} days of history, have {n}",
        )

    burnout = tail["burnout_score"].to_numpy(dtype=np.float64)
    slope, intercept = ols_fit(burnout)

    if "readiness_score" in tail.columns:
        readiness = tail["readiness_score"].to_numpy(dtype=np.float64)
    else:
        readiness = np.full(n, 100.0 - burnout.mean())
    r_slope, r_intercept = ols_fit(readiness)

    current = float(burnout[-1])
    current_zone = classify_zone(current, float(readiness[-1]), thresholds)
    direction, severity = classify_trend(slope, p)

    forecast = []
    for offset in range(1, p.horizon_days + 1):
        x = n - 1 + offset
        b = float(np.clip(intercept + slope * x, 0.0, 100.0))
        r = float(np.clip(r_intercept + r_slope * x, 0.0, 100.0))
        forecast.append(ForecastPoint(
            day=offset,
            predicted_score=b,
            predicted_zone=classify_zone(b, r, thresholds),
            confidence=forecast_confidence(offset, p),
        ))

    return Prediction(
        has_prediction=True,
        days_analyzed=n,
        current_score=current,
        current_zone=current_zone,
        direction=direction,
        severity=severity,
        daily_change=slope,
        days_until_red=days_until_red(current, slope, thresholds, p),
        forecast=tuple(forecast),
    )
