"""Boundary coercion shared by the input models."""
import math
from datetime import datetime, timezone
from typing import Any, Optional


def finite_float(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        return None
    return as_float if math.isfinite(as_float) else None


def clamp_float(value: Any, low: float, high: float) -> float:
    """Coerce to a finite float clamped to [low, high]; invalid input becomes ``low``."""
    as_float = finite_float(value)
    if as_float is None:
        return low
    return max(low, min(high, as_float))


def clean_id(value: Any) -> str:
    """Stringify and trim an identifier; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip()


def normalize_code(value: Any) -> str:
    """Descriptor codes are grouped trimmed and upper-cased."""
    return clean_id(value).upper()


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
