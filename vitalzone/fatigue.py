"""
Vacation fatigue: accumulated risk from a long stretch without a strong
recovery day (green zone with high readiness).
"""

import logging
from datetime import date
from typing import Optional

import pandas as pd

from vitalzone.config import EngineConfig
from vitalzone.models import FatigueAssessment, Zone

logger = logging.getLogger(__name__)


def last_good_recovery(history: Optional[pd.DataFrame], today: date, cfg: EngineConfig) -> Optional[date]:
    """Most recent day before `today` classified green with readiness at or above the cutoff."""
    if history is None or history.empty:
        return None

    dates = pd.to_datetime(history["date"]).dt.date
    good = history[
        (dates < today)
        & (history["zone"] == Zone.GREEN.value)
        & (history["readiness_score"] >= cfg.fatigue.good_recovery_readiness)
    ]
    if good.empty:
        return None
    return pd.to_datetime(good["date"]).max().date()


def fatigue_penalty(days_since: int, cfg: EngineConfig) -> float:
    for above, penalty in cfg.fatigue.breakpoints:
        if days_since > above:
            return penalty
    return 0.0


def assess_fatigue(history: Optional[pd.DataFrame], today: date, cfg: EngineConfig) -> FatigueAssessment:
    """
    Map days since the last strong recovery to a penalty.

    No qualifying day on record is treated as the maximal default gap
    rather than an error.
    """
    fp = cfg.fatigue
    last = last_good_recovery(history, today, cfg)
    if last is None:
        days_since = fp.default_days_since
        logger.debug("No strong recovery day on record, assuming %d days", days_since)
    else:
        days_since = (today - last).days

    return FatigueAssessment(
        days_since_recovery=days_since,
        penalty=fatigue_penalty(days_since, cfg),
        needs_break=days_since > fp.needs_break_after,
        last_recovery_date=last,
    )
