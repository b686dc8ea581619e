from __future__ import annotations

import enum
from decimal import Decimal
from numbers import Real


class QualityTier(enum.Enum):
    excellent = "excellent"
    good = "good"
    average = "average"
    poor = "poor"


# Lower bound (inclusive) of each tier, best first.
TIER_THRESHOLDS: tuple[tuple[QualityTier, float], ...] = (
    (QualityTier.excellent, 90.0),
    (QualityTier.good, 70.0),
    (QualityTier.average, 50.0),
)


def classify_sqi(sqi: float | Decimal) -> QualityTier:
    if isinstance(sqi, bool) or not isinstance(sqi, (Real, Decimal)):
        raise TypeError(f"SQI must be a number, got {type(sqi).__name__}")
    value = float(sqi)
    for tier, lower_bound in TIER_THRESHOLDS:
        if value >= lower_bound:
            return tier
    return QualityTier.poor


def tier_counts(values: list[float]) -> dict[str, int]:
    counts = {tier.value: 0 for tier in QualityTier}
    for value in values:
        counts[classify_sqi(value).value] += 1
    return counts
