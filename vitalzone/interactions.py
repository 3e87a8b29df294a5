"""
Interaction effects: non-linear penalty for simultaneously elevated factors.

Rules are defined in config.interactions.pairs, so new pairings are
addable without code changes. A pair fires only when both factors exceed
the `high` threshold; the penalty is the geometric mean of the two excess
amounts scaled by (multiplier - 1). The total is capped.
"""

from typing import Dict, List, Tuple

import numpy as np

from vitalzone.config import EngineConfig, ThresholdConfig
from vitalzone.models import InteractionEffect


def detect_interactions(
    factor_scores: Dict[str, float],
    thresholds: ThresholdConfig,
    cfg: EngineConfig,
) -> Tuple[float, List[InteractionEffect]]:
    """
    Scan every configured pair against today's burnout factor scores.

    Args:
        factor_scores: burnout factor name → normalized score
    Returns:
        (capped total penalty, list of firing pairs)
    """
    if not thresholds.enable_interaction_effects:
        return 0.0, []

    high = thresholds.interaction_high
    critical = thresholds.interaction_critical
    effects: List[InteractionEffect] = []

    for pair in cfg.interactions.pairs:
        a = factor_scores.get(pair.first, 0.0)
        b = factor_scores.get(pair.second, 0.0)
        if a <= high or b <= high:
            continue

        excess = np.sqrt((a - high) * (b - high))
        penalty = float(excess * (pair.multiplier - 1.0))
        severity = "critical" if a > critical and b > critical else "elevated"

        effects.append(InteractionEffect(
            first=pair.first,
            second=pair.second,
            label=pair.label,
            severity=severity,
            penalty=penalty,
        ))

    total = sum(e.penalty for e in effects)
    return min(total, cfg.interactions.max_penalty), effects
