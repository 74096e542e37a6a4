# competency_engine/scoring/descriptor_aggregator.py
"""
Criterion → Descriptor (DO) Aggregator
--------------------------------------
Fans criterion-level evaluations (scored 0–4) out to per-student,
per-descriptor weighted averages.

Pipeline:
  CriterionEvaluation ──► criteria index lookup ──► effective weight ──► every DO code
                                                                          of the criterion

Effective weight priority:
    evaluation.weight  →  criterion.weight  →  1
    weight ≤ 0 drops the evaluation.

Evolutive mode keeps one accumulator set per course (5º / 6º) and blends:
    avg = avg5 × w5/(w5+w6) + avg6 × w6/(w5+w6)     both courses have evidence
    avg = (ΣVW5 + ΣVW6) / (ΣW5 + ΣW6)                 configured w5 + w6 == 0
    avg = avg of the only course with evidence        otherwise

Invalid records are never raised: they are dropped and counted in the log.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import structlog
from pydantic import BaseModel, field_validator

from competency_engine.models.curriculum import Criterion
from competency_engine.models.enumerations import Course
from competency_engine.models.evaluation import CriterionEvaluation
from competency_engine.models._coerce import finite_float
from competency_engine.scoring.accumulator import AggregationResult, WeightedAccumulator
from competency_engine.scoring.utils import ONE, ZERO, quantize_score, to_decimal

logger = structlog.get_logger(__name__)

CriteriaIndex = Mapping[str, Criterion]
DoScoresByStudent = Dict[str, Dict[str, AggregationResult]]

_Accumulators = Dict[str, Dict[str, WeightedAccumulator]]


class CourseWeights(BaseModel):
    """Cohort trust weights for the evolutive blend. Negative or invalid → 0."""

    course_5: float = 0.4
    course_6: float = 0.6

    @field_validator("course_5", "course_6", mode="before")
    @classmethod
    def non_negative(cls, v: Any) -> float:
        as_float = finite_float(v)
        if as_float is None or as_float < 0:
            return 0.0
        return as_float

    @classmethod
    def from_mapping(cls, weights: Mapping[int, Any]) -> "CourseWeights":
        """Build from a ``{5: w5, 6: w6}`` mapping; missing keys default to 0."""
        return cls(course_5=weights.get(5, 0.0), course_6=weights.get(6, 0.0))

    def as_decimals(self) -> Tuple[Decimal, Decimal]:
        return to_decimal(self.course_5), to_decimal(self.course_6)


def build_criteria_index(criteria: Iterable[Criterion]) -> Dict[str, Criterion]:
    """Index criteria by ID. Criteria with an empty ID are skipped; later duplicates win."""
    return {c.id: c for c in criteria if c.id}


@dataclass
class _Contribution:
    student_id: str
    criterion: Criterion
    score: Decimal
    weight: Decimal


class CriterionDescriptorAggregator:
    """Roll criterion evaluations up to descriptor-level averages."""

    def compute_do_scores(
        self,
        evaluations: Iterable[CriterionEvaluation],
        criteria_index: CriteriaIndex,
    ) -> DoScoresByStudent:
        """
        Per (student, DO code) weighted average over all courses.

        Args:
            evaluations: Criterion evaluations (scores already clamped to 0–4).
            criteria_index: criterion_id → Criterion.

        Returns:
            student_id → DO code → AggregationResult.
        """
        agg: _Accumulators = {}
        processed = dropped = 0

        for ev in evaluations:
            contribution = self._resolve(ev, criteria_index)
            if contribution is None:
                dropped += 1
                continue
            processed += 1
            self._accumulate(agg, contribution, ev)

        out: DoScoresByStudent = {
            student_id: {code: acc.result() for code, acc in by_do.items()}
            for student_id, by_do in agg.items()
        }

        logger.debug(
            "do_scores_computed",
            mode="plain",
            processed=processed,
            dropped=dropped,
            students=len(out),
        )
        return out

    def compute_do_scores_evolutive(
        self,
        evaluations: Iterable[CriterionEvaluation],
        criteria_index: CriteriaIndex,
        course_weights: Optional[CourseWeights] = None,
    ) -> DoScoresByStudent:
        """
        Per (student, DO code) blend of the 5º and 6º course averages.

        Args:
            evaluations: Criterion evaluations.
            criteria_index: criterion_id → Criterion (course decides the partition).
            course_weights: Cohort trust weights; defaults to 5º 0.4 / 6º 0.6.

        Returns:
            student_id → DO code → AggregationResult. ``weight_total`` is the
            evidence volume of both courses, not the blend weights.
        """
        weights = course_weights or CourseWeights()
        w5, w6 = weights.as_decimals()

        agg5: _Accumulators = {}
        agg6: _Accumulators = {}
        processed = dropped = 0

        for ev in evaluations:
            contribution = self._resolve(ev, criteria_index)
            if contribution is None:
                dropped += 1
                continue
            processed += 1
            target = agg6 if contribution.criterion.course == Course.SIXTH else agg5
            self._accumulate(target, contribution, ev)

        out: DoScoresByStudent = {}
        for student_id in list(agg5) + [s for s in agg6 if s not in agg5]:
            by5 = agg5.get(student_id, {})
            by6 = agg6.get(student_id, {})
            by_do: Dict[str, AggregationResult] = {}
            for code in list(by5) + [c for c in by6 if c not in by5]:
                by_do[code] = self._blend(by5.get(code), by6.get(code), w5, w6)
            out[student_id] = by_do

        logger.debug(
            "do_scores_computed",
            mode="evolutive",
            course_weight_5=float(w5),
            course_weight_6=float(w6),
            processed=processed,
            dropped=dropped,
            students=len(out),
        )
        return out

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _resolve(
        ev: CriterionEvaluation,
        criteria_index: CriteriaIndex,
    ) -> Optional[_Contribution]:
        """Look up the criterion and effective weight; None drops the evaluation."""
        if not ev.student_id or not ev.criterion_id:
            return None

        criterion = criteria_index.get(ev.criterion_id)
        if criterion is None or not criterion.descriptor_codes:
            return None

        if ev.weight is not None:
            weight = to_decimal(ev.weight)
        elif criterion.weight is not None:
            weight = to_decimal(criterion.weight)
        else:
            weight = ONE
        if weight <= 0:
            return None

        return _Contribution(
            student_id=ev.student_id,
            criterion=criterion,
            score=to_decimal(ev.score),
            weight=weight,
        )

    @staticmethod
    def _accumulate(
        target: _Accumulators,
        contribution: _Contribution,
        ev: CriterionEvaluation,
    ) -> None:
        by_do = target.setdefault(contribution.student_id, {})
        for code in contribution.criterion.descriptor_codes:
            acc = by_do.setdefault(code, WeightedAccumulator())
            acc.add(contribution.score, contribution.weight, ev.at)

    @staticmethod
    def _blend(
        a5: Optional[WeightedAccumulator],
        a6: Optional[WeightedAccumulator],
        w5: Decimal,
        w6: Decimal,
    ) -> AggregationResult:
        has5 = a5 is not None and a5.has_evidence
        has6 = a6 is not None and a6.has_evidence
        sum_w5 = a5.sum_w if a5 else ZERO
        sum_w6 = a6.sum_w if a6 else ZERO

        if has5 and has6:
            denom = w5 + w6
            if denom > 0:
                average = a5.average * (w5 / denom) + a6.average * (w6 / denom)
            else:
                # Degenerate cohort weights: pool the raw weighted sums.
                average = (a5.sum_vw + a6.sum_vw) / (sum_w5 + sum_w6)
        elif has6:
            average = a6.average
        elif has5:
            average = a5.average
        else:
            average = ZERO

        latest_candidates = [a.latest_at for a in (a5, a6) if a is not None and a.latest_at is not None]

        return AggregationResult(
            average=quantize_score(average),
            weight_total=quantize_score(sum_w5 + sum_w6),
            count=(a5.count if a5 else 0) + (a6.count if a6 else 0),
            latest_at=max(latest_candidates) if latest_candidates else None,
        )
