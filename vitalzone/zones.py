"""
Zone classification and transition signalling.

The zone is recomputed fresh each day from (burnout, readiness); it is not
path-dependent. Only the consumer compares today's zone with yesterday's.
"""

from datetime import date
from typing import Dict, Iterable, Optional

import numpy as np

from vitalzone.config import ThresholdConfig
from vitalzone.models import Zone, ZoneTransition

ALERT_ZONES = (Zone.RED, Zone.GREEN)


def classify_zone(burnout_score: float, readiness_score: float, thresholds: ThresholdConfig) -> Zone:
    """
    Decision order matters, first match wins:
        red     burnout at or above the red threshold
        green   readiness at or above the green threshold
        yellow  everything else
    """
    if burnout_score >= thresholds.burnout_red:
        return Zone.RED
    if readiness_score >= thresholds.readiness_green:
        return Zone.GREEN
    return Zone.YELLOW


def detect_transition(
    person_id: str,
    day: date,
    zone: Zone,
    previous_zone: Zone,
) -> Optional[ZoneTransition]:
    """Signal an alert-worthy change: into red or green from a different zone."""
    if zone == previous_zone or zone not in ALERT_ZONES:
        return None
    return ZoneTransition(
        person_id=person_id,
        day=day,
        previous_zone=previous_zone,
        zone=zone,
        alert_type="burnout" if zone is Zone.RED else "opportunity",
    )


def percentile_thresholds(
    burnout_scores: Iterable[float],
    readiness_scores: Iterable[float],
    percentile: float = 70.0,
    min_samples: int = 10,
    defaults: Optional[ThresholdConfig] = None,
) -> Dict[str, object]:
    """
    Derive red/green cutoffs from a population's recent scores.

    Uses the sorted-index rule floor(p/100 · n) on each series. Fewer than
    `min_samples` scores falls back to the absolute defaults.
    """
    defaults = defaults or ThresholdConfig()
    burnout = np.sort(np.asarray(list(burnout_scores), dtype=np.float64))
    readiness = np.sort(np.asarray(list(readiness_scores), dtype=np.float64))
    n = min(len(burnout), len(readiness))

    if n < min_samples:
        return {
            "burnout_red": defaults.burnout_red,
            "readiness_green": defaults.readiness_green,
            "sample_size": n,
            "calculated": False,
        }

    idx = min(int(np.floor(percentile / 100.0 * n)), n - 1)
    return {
        "burnout_red": float(round(burnout[idx])),
        "readiness_green": float(round(readiness[idx])),
        "sample_size": n,
        "calculated": True,
    }
