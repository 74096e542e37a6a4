"""
Decimal Utilities
competency_engine/scoring/utils.py

Provides precision-safe decimal math for the aggregators.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional

ZERO = Decimal("0")
ONE = Decimal("1")
SCORE_PLACES = Decimal("0.0001")


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """
    Convert a number to Decimal via its string form.

    Non-numeric, NaN and infinite inputs yield ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(as_float):
        return default
    try:
        return Decimal(str(value)) if isinstance(value, (int, str)) else Decimal(str(as_float))
    except InvalidOperation:
        return Decimal(str(as_float))


def quantize_score(value: Decimal) -> Decimal:
    """Round an emitted score to 4 decimal places."""
    return value.quantize(SCORE_PLACES, rounding=ROUND_HALF_UP)


def mean(values: Iterable[Decimal]) -> Decimal:
    """
    Unweighted arithmetic mean. Returns Decimal("0") for an empty input.

    Not rounded: thresholds compare against the exact value, callers
    quantize what they emit.
    """
    items = list(values)
    if not items:
        return ZERO
    return sum(items, ZERO) / Decimal(len(items))


def weighted_mean(values: List[Decimal], weights: List[Decimal]) -> Decimal:
    """
    Calculate weighted mean.

    Formula: Σ(value_i × weight_i) / Σ(weight_i)
    Pairs with a non-positive weight are skipped.
    Returns Decimal("0") if no weight remains. Not rounded.
    """
    if len(values) != len(weights):
        raise ValueError("values and weights must have same length")

    total_weight = ZERO
    numerator = ZERO
    for v, w in zip(values, weights):
        if w <= 0:
            continue
        total_weight += w
        numerator += v * w

    if total_weight == 0:
        return ZERO
    return numerator / total_weight
