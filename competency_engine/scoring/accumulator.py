"""
Weighted accumulator shared by the descriptor and competency aggregators.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from competency_engine.scoring.utils import ZERO, quantize_score


@dataclass
class AggregationResult:
    """Common output of both aggregators, keyed by (student, descriptor|competency)."""
    average: Decimal                # Σ(v×w)/Σw, 0 when Σw == 0
    weight_total: Decimal           # Σw, evidence volume indicator
    count: int                      # contributions accumulated
    latest_at: Optional[datetime]   # most recent contribution


@dataclass
class WeightedAccumulator:
    """Running Σ(v×w), Σw, count and latest timestamp."""
    sum_vw: Decimal = ZERO
    sum_w: Decimal = ZERO
    count: int = 0
    latest_at: Optional[datetime] = None

    def add(self, value: Decimal, weight: Decimal, at: Optional[datetime]) -> None:
        """Add one contribution. Callers only pass weight > 0."""
        self.sum_vw += value * weight
        self.sum_w += weight
        self.count += 1
        if at is not None and (self.latest_at is None or at > self.latest_at):
            self.latest_at = at

    @property
    def has_evidence(self) -> bool:
        return self.sum_w > 0

    @property
    def average(self) -> Decimal:
        if self.sum_w <= 0:
            return ZERO
        return self.sum_vw / self.sum_w

    def result(self) -> AggregationResult:
        return AggregationResult(
            average=quantize_score(self.average),
            weight_total=quantize_score(self.sum_w),
            count=self.count,
            latest_at=self.latest_at,
        )
