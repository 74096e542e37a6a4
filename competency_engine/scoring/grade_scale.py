# competency_engine/scoring/grade_scale.py
"""
Grade Scale
-----------
Maps the 4-symbol teacher vocabulary (RED < YELLOW < GREEN < BLUE) to numeric
anchors and classifies a number back to a symbol.

Classification uses the midpoints between adjacent anchors as breakpoints;
a value on a breakpoint goes to the upper symbol:

    anchors 3.5 / 5.5 / 7.5 / 9.5  →  RED < 4.5 ≤ YELLOW < 6.5 ≤ GREEN < 8.5 ≤ BLUE

Two anchor tables are in use and they disagree (see DESIGN.md). The table is
always passed in; calculators never fall back to a module-level scale.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from competency_engine.core.exceptions import InvalidAnchorTableException
from competency_engine.models.enumerations import GradeKey
from competency_engine.scoring.utils import mean, to_decimal

Number = Union[int, float, Decimal]

# Low → high. Order matters for classification.
GRADE_ORDER: Tuple[GradeKey, ...] = (
    GradeKey.RED,
    GradeKey.YELLOW,
    GradeKey.GREEN,
    GradeKey.BLUE,
)

# Task, situation and evidence-note ratings.
TRIANGULATION_ANCHORS: Dict[GradeKey, Decimal] = {
    GradeKey.RED:    Decimal("3.5"),
    GradeKey.YELLOW: Decimal("5.5"),
    GradeKey.GREEN:  Decimal("7.5"),
    GradeKey.BLUE:   Decimal("9.5"),
}

# Legacy triangulation sheet.
LEGACY_ANCHORS: Dict[GradeKey, Decimal] = {
    GradeKey.RED:    Decimal("2.5"),
    GradeKey.YELLOW: Decimal("5.0"),
    GradeKey.GREEN:  Decimal("7.5"),
    GradeKey.BLUE:   Decimal("10.0"),
}

ANCHOR_TABLES: Dict[str, Dict[GradeKey, Decimal]] = {
    "triangulation": TRIANGULATION_ANCHORS,
    "legacy": LEGACY_ANCHORS,
}

GRADE_LABEL_ES: Dict[GradeKey, str] = {
    GradeKey.RED:    "Insuficiente",
    GradeKey.YELLOW: "Suficiente",
    GradeKey.GREEN:  "Notable",
    GradeKey.BLUE:   "Sobresaliente",
}


class GradeScale:
    """
    Numeric meaning of the grade vocabulary for one call site.

    Usage:
        scale = GradeScale(TRIANGULATION_ANCHORS)
        scale.value_of(GradeKey.GREEN)      # Decimal('7.5')
        scale.classify(8.6)                 # GradeKey.BLUE
    """

    def __init__(self, anchors: Mapping[GradeKey, Number]):
        missing = [k.value for k in GRADE_ORDER if k not in anchors]
        if missing:
            raise InvalidAnchorTableException(
                f"Anchor table is missing grade keys: {', '.join(missing)}"
            )

        table: Dict[GradeKey, Decimal] = {}
        for key in GRADE_ORDER:
            value = to_decimal(anchors[key], default=None)
            if value is None:
                raise InvalidAnchorTableException(
                    f"Anchor for {key.value} is not a finite number: {anchors[key]!r}"
                )
            table[key] = value

        for low, high in zip(GRADE_ORDER, GRADE_ORDER[1:]):
            if table[high] <= table[low]:
                raise InvalidAnchorTableException(
                    f"Anchors must be strictly increasing: "
                    f"{low.value}={table[low]} >= {high.value}={table[high]}"
                )

        self._anchors = table
        # Midpoints between adjacent anchors, low → high.
        self._breakpoints: List[Tuple[Decimal, GradeKey]] = [
            ((table[low] + table[high]) / 2, high)
            for low, high in zip(GRADE_ORDER, GRADE_ORDER[1:])
        ]

    @classmethod
    def named(cls, table_name: str) -> "GradeScale":
        """Build a scale from a named table ('triangulation' or 'legacy')."""
        try:
            return cls(ANCHOR_TABLES[table_name])
        except KeyError:
            raise InvalidAnchorTableException(
                f"Unknown anchor table '{table_name}'. "
                f"Expected one of: {', '.join(sorted(ANCHOR_TABLES))}"
            )

    @property
    def anchors(self) -> Dict[GradeKey, Decimal]:
        return dict(self._anchors)

    @property
    def breakpoints(self) -> List[Decimal]:
        """Classification thresholds, low → high."""
        return [bp for bp, _ in self._breakpoints]

    def value_of(self, key: GradeKey) -> Decimal:
        return self._anchors[GradeKey(key)]

    def classify(self, value: Number) -> GradeKey:
        """
        Assign the symbol whose band contains ``value``.

        Non-finite input is treated as 0 and classifies as RED.
        """
        v = to_decimal(value)
        result = GRADE_ORDER[0]
        for threshold, key in self._breakpoints:
            if v >= threshold:
                result = key
        return result

    @staticmethod
    def average(values: Iterable[Number]) -> Decimal:
        """Unweighted arithmetic mean, unrounded; 0 for an empty input."""
        return mean(to_decimal(v) for v in values)

    @staticmethod
    def order_of(key: GradeKey) -> int:
        """Ordinal position 0 (RED) .. 3 (BLUE)."""
        return GRADE_ORDER.index(GradeKey(key))

    @staticmethod
    def label_of(key: GradeKey) -> str:
        return GRADE_LABEL_ES[GradeKey(key)]
